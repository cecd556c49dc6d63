# activebreak/exercises.py
import random

from .messages import current_locale

# Guided break micro-exercises, suggested when a break interval elapses.
BREAK_EXERCISES = {
    "neck-roll": {
        "id": "neck-roll",
        "duration_seconds": 15,
        "focus": "Neck",
        "name": {"en": "Neck Roll", "es": "Giro de Cuello"},
        "desc": {
            "en": "Slowly turn your head from side to side for 15 seconds.",
            "es": "Gira tu cabeza lentamente de lado a lado durante 15 segundos.",
        },
    },
    "shoulder-shrug": {
        "id": "shoulder-shrug",
        "duration_seconds": 10,
        "focus": "Shoulders • Upper back",
        "name": {"en": "Shoulder Stretch", "es": "Estiramiento de Hombros"},
        "desc": {
            "en": "Shrug your shoulders up to your ears, hold 5s and relax.",
            "es": "Encoge tus hombros hacia tus orejas, mantén 5s y relaja.",
        },
    },
    "wrist-stretch": {
        "id": "wrist-stretch",
        "duration_seconds": 10,
        "focus": "Wrists • Forearms",
        "name": {"en": "Wrist Stretch", "es": "Estiramiento de Muñeca"},
        "desc": {
            "en": "Extend your arm and flex your wrist up and down (10s).",
            "es": "Extiende tu brazo y flexiona tu muñeca hacia arriba y abajo (10s).",
        },
    },
    "far-gaze": {
        "id": "far-gaze",
        "duration_seconds": 20,
        "focus": "Eyes",
        "name": {"en": "Far Gaze", "es": "Mirada Lejana"},
        "desc": {
            "en": "Focus on a distant object (20m+) for 20 seconds.",
            "es": "Enfoca tu vista en un objeto lejano (20m+) durante 20 segundos.",
        },
    },
}


def localized_exercise(exercise: dict, locale: str = None) -> dict:
    locale = locale or current_locale()
    return {
        "id": exercise["id"],
        "duration_seconds": exercise["duration_seconds"],
        "focus": exercise["focus"],
        "name": exercise["name"].get(locale, exercise["name"]["en"]),
        "desc": exercise["desc"].get(locale, exercise["desc"]["en"]),
    }


def pick_exercise(rng: random.Random = None) -> dict:
    rng = rng or random
    return localized_exercise(rng.choice(list(BREAK_EXERCISES.values())))
