from models.db import db
from utils.clock import utcnow

# many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

class User(db.Model):
    """A league member. Players book tee times; admins also run the season."""
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(120), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users", lazy="selectin")
    reservations = db.relationship("Reservation", back_populates="user")

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email})>"

class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # PLAYER, ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")

    def __repr__(self):
        return f"<Role({self.name})>"
