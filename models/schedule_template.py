from models.db import db
from utils.clock import utcnow

class ScheduleTemplate(db.Model):
    """Recurring weekly rule a season's tee times are generated from."""
    __tablename__ = "schedule_templates"

    id = db.Column(db.Integer, primary_key=True)
    season_id = db.Column(db.Integer, db.ForeignKey("seasons.id"), nullable=False, unique=True, index=True)

    # 0 = Sunday ... 6 = Saturday
    day_of_week = db.Column(db.Integer, nullable=False)
    time_slots = db.Column(db.JSON, nullable=False, default=list)  # ["15:40", "15:50"]
    max_slots = db.Column(db.Integer, nullable=False, default=4)

    booking_opens_days_before = db.Column(db.Integer, nullable=False)
    booking_opens_time = db.Column(db.String(8), nullable=False)
    booking_closes_days_before = db.Column(db.Integer, nullable=False)
    booking_closes_time = db.Column(db.String(8), nullable=False)
    timezone = db.Column(db.String(64), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    season = db.relationship("Season", back_populates="template")

    __table_args__ = (
        db.CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_template_day_of_week"),
        db.CheckConstraint("max_slots >= 1", name="ck_template_max_slots"),
        db.CheckConstraint(
            "booking_opens_days_before > booking_closes_days_before",
            name="ck_template_window_order",
        ),
    )
