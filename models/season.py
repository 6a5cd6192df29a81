from models.db import db
from utils.clock import utcnow

class Season(db.Model):
    __tablename__ = "seasons"

    id = db.Column(db.Integer, primary_key=True)
    year = db.Column(db.Integer, unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)

    is_active = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    template = db.relationship("ScheduleTemplate", back_populates="season", uselist=False)

    __table_args__ = (
        db.CheckConstraint("start_date <= end_date", name="ck_season_date_range"),
        # At most one active season: a second TRUE row violates this partial index
        db.Index(
            "uq_seasons_single_active",
            "is_active",
            unique=True,
            postgresql_where=db.text("is_active"),
            sqlite_where=db.text("is_active = 1"),
        ),
    )

    def __repr__(self):
        return f"<Season(id={self.id}, year={self.year}, active={self.is_active})>"
