from models.db import db
from utils.clock import utcnow

class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    tee_time_id = db.Column(db.Integer, db.ForeignKey("tee_times.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    slots = db.Column(db.Integer, nullable=False, default=1)
    player_names = db.Column(db.JSON, nullable=False, default=list)  # guests, len == slots - 1
    play_for_money = db.Column(db.JSON, nullable=False, default=list)  # len == slots, [0] is booker

    # client-supplied key so a retried booking never books twice
    idempotency_key = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    tee_time = db.relationship("TeeTime", back_populates="reservations")
    user = db.relationship("User", back_populates="reservations")

    __table_args__ = (
        db.CheckConstraint("slots >= 1", name="ck_reservation_slots_positive"),
        db.UniqueConstraint("user_id", "idempotency_key", name="uq_reservation_idempotency"),
    )

    def __repr__(self):
        return f"<Reservation(id={self.id}, tee_time={self.tee_time_id}, user={self.user_id}, slots={self.slots})>"
