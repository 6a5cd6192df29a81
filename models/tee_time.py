from models.db import db
from utils.clock import utcnow

class TeeTime(db.Model):
    __tablename__ = "tee_times"

    id = db.Column(db.Integer, primary_key=True)

    date = db.Column(db.Date, nullable=False, index=True)
    time = db.Column(db.Time, nullable=False)
    season = db.Column(db.Integer, nullable=True, index=True)  # season year, denormalized for scoping

    max_slots = db.Column(db.Integer, nullable=False, default=4)
    is_available = db.Column(db.Boolean, default=True, nullable=False)  # admin override

    # naive UTC; NULL means the tee time has no booking window
    booking_opens_at = db.Column(db.DateTime, nullable=True)
    booking_closes_at = db.Column(db.DateTime, nullable=True)

    # bumped by every write that changes the capacity picture
    version = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    reservations = db.relationship("Reservation", back_populates="tee_time", lazy="selectin")

    __table_args__ = (
        # One tee time per date + time
        db.UniqueConstraint("date", "time", name="uq_tee_time_date_time"),
        db.CheckConstraint("max_slots >= 0", name="ck_tee_time_max_slots"),
    )

    @property
    def time_slot(self) -> str:
        return self.time.strftime("%H:%M")

    def __repr__(self):
        return f"<TeeTime(id={self.id}, date={self.date}, time={self.time_slot}, max={self.max_slots})>"
