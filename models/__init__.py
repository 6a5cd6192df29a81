from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .season import Season
from .schedule_template import ScheduleTemplate
from .tee_time import TeeTime
from .reservation import Reservation
