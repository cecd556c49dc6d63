# activebreak/messages.py
from flask import current_app, has_app_context

DEFAULT_LOCALE = "en"

MESSAGES = {
    "en": {
        "user_not_found": "user not found",
        "stats_not_found": "no statistics recorded yet",
        "email_in_use": "email already in use",
        "invalid_credentials": "invalid credentials",
        "missing_credentials": "email and password are required",
        "password_too_short": "password must be at least 6 characters",
        "invalid_role": "role must be 'admin' or 'client'",
        "admin_required": "admin role required",
        "cannot_delete_self": "you cannot delete your own account",
        "db_error": "database error, please try again",
        "invalid_settings": "invalid settings",
        "invalid_keypoints": "keypoints must be a list of {name, x, y, score}",
        "invalid_event_type": "type must be 'correct', 'incorrect', 'session_start' or 'session_end'",
        "invalid_timestamp": "timestamp must be an integer in milliseconds",
        "invalid_period_type": "period_type must be 'daily', 'weekly' or 'monthly'",
        "invalid_date": "dates must use YYYY-MM-DD",
        "invalid_date_range": "start_date must not be after end_date",
        "no_active_session": "no active session",
        "invalid_posture": "posture must be 'correct' or 'incorrect'",
        "exercise_not_found": "exercise not found",
        "alert_title": "Posture alert!",
        "alert_body": "Fix your posture! You have been slouching for more than {seconds}s.",
        "break_title": "Time for a break! (Exercise)",
        "break_body": "Suggestion: {name} - {desc}",
    },
    "es": {
        "user_not_found": "usuario no encontrado",
        "stats_not_found": "todavía no hay estadísticas registradas",
        "email_in_use": "el email ya está registrado",
        "invalid_credentials": "credenciales inválidas",
        "missing_credentials": "email y contraseña son obligatorios",
        "password_too_short": "la contraseña debe tener al menos 6 caracteres",
        "invalid_role": "el rol debe ser 'admin' o 'client'",
        "admin_required": "se requiere rol de administrador",
        "cannot_delete_self": "no puedes eliminar tu propia cuenta",
        "db_error": "error de base de datos, inténtalo de nuevo",
        "invalid_settings": "configuración inválida",
        "invalid_keypoints": "keypoints debe ser una lista de {name, x, y, score}",
        "invalid_event_type": "type debe ser 'correct', 'incorrect', 'session_start' o 'session_end'",
        "invalid_timestamp": "timestamp debe ser un entero en milisegundos",
        "invalid_period_type": "period_type debe ser 'daily', 'weekly' o 'monthly'",
        "invalid_date": "las fechas deben tener formato YYYY-MM-DD",
        "invalid_date_range": "start_date no puede ser posterior a end_date",
        "no_active_session": "no hay una sesión activa",
        "invalid_posture": "posture debe ser 'correct' o 'incorrect'",
        "exercise_not_found": "ejercicio no encontrado",
        "alert_title": "¡Alerta de Postura!",
        "alert_body": "¡Corrige tu postura! Llevas más de {seconds}s en mala posición.",
        "break_title": "¡Hora de un Descanso! (Ejercicio)",
        "break_body": "Sugerencia: {name} - {desc}",
    },
}


def current_locale() -> str:
    if has_app_context():
        return current_app.config.get("ACTIVEBREAK_LOCALE", DEFAULT_LOCALE)
    return DEFAULT_LOCALE


def msg(key: str, **kwargs) -> str:
    catalog = MESSAGES.get(current_locale(), MESSAGES[DEFAULT_LOCALE])
    text = catalog.get(key) or MESSAGES[DEFAULT_LOCALE][key]
    return text.format(**kwargs) if kwargs else text
