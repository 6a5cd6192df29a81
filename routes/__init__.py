from flask import Blueprint, jsonify

from .auth import auth_bp
from .admin import admin_bp
from .audit_logs import audit_bp
from .seasons import season_bp
from .tee_times import tee_time_bp
from .reservations import reservation_bp

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200
