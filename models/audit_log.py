import json

from models.db import db
from utils.clock import utcnow

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)

    action = db.Column(db.String(80), nullable=False, index=True)  # RESERVATION_CREATE, SEASON_ACTIVATE, ...
    user_id = db.Column(db.Integer, nullable=True)  # NULL for anonymous and CLI events
    entity = db.Column(db.String(40), nullable=True)  # reservation, tee_time, season, user
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    @property
    def details(self) -> dict:
        return json.loads(self.metadata_json) if self.metadata_json else {}

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action={self.action}, {self.entity}={self.entity_id})>"
