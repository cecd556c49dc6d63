# activebreak/models/user.py
from werkzeug.security import generate_password_hash, check_password_hash
from .. import db
from ..scoring import utc_now

ROLES = ("admin", "client")


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(*ROLES, name="user_role_enum"),
        nullable=False,
        default="client",
    )
    full_name = db.Column(db.String(150))
    org_name = db.Column(db.String(150))

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "full_name": self.full_name,
            "org_name": self.org_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
