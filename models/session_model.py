import uuid

from models import db
from utils.clock import isoformat, utcnow

STATUS_OPEN = "open"
STATUS_CLOSED = "closed"


def _new_session_id():
    return uuid.uuid4().hex


class AttendanceSession(db.Model):
    __tablename__ = "attendance_session"

    id = db.Column(db.String(32), primary_key=True, default=_new_session_id)
    class_id = db.Column(db.String(100), nullable=False, index=True)
    subject_id = db.Column(db.String(100), nullable=True)
    created_by = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(10), nullable=False, default=STATUS_OPEN, index=True)
    rotation_seconds = db.Column(db.Integer, nullable=False)
    strict_device_binding = db.Column(db.Boolean, nullable=False, default=True)
    current_token = db.Column(db.String(500), nullable=True)
    token_issued_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_at = db.Column(db.DateTime, nullable=False)
    closed_at = db.Column(db.DateTime, nullable=True)

    @property
    def is_open(self):
        return self.status == STATUS_OPEN

    def to_dict(self, include_token=True):
        data = {
            "id": self.id,
            "classId": self.class_id,
            "subjectId": self.subject_id,
            "createdBy": self.created_by,
            "status": self.status,
            "rotationSeconds": self.rotation_seconds,
            "strictDeviceBinding": self.strict_device_binding,
            "tokenIssuedAt": isoformat(self.token_issued_at),
            "createdAt": isoformat(self.created_at),
            "endAt": isoformat(self.end_at),
            "closedAt": isoformat(self.closed_at),
        }
        if include_token:
            data["currentToken"] = self.current_token
        return data


class SessionStore:
    """Persistence for attendance sessions and their live token."""

    def __init__(self, session):
        self._db = session

    def add(self, **fields):
        record = AttendanceSession(**fields)
        self._db.add(record)
        self._db.commit()
        return record

    def get(self, session_id):
        if not session_id:
            return None
        return self._db.get(AttendanceSession, session_id)

    def list_open(self, class_id=None):
        query = self._db.query(AttendanceSession).filter_by(status=STATUS_OPEN)
        if class_id:
            query = query.filter_by(class_id=class_id)
        return query.order_by(AttendanceSession.created_at.desc()).all()

    def open_session_ids(self):
        rows = self._db.query(AttendanceSession.id).filter_by(status=STATUS_OPEN).all()
        return [row[0] for row in rows]

    def set_token(self, session_id, token, issued_at):
        # Only open sessions receive tokens; a concurrent close wins
        updated = (
            self._db.query(AttendanceSession)
            .filter_by(id=session_id, status=STATUS_OPEN)
            .update(
                {"current_token": token, "token_issued_at": issued_at},
                synchronize_session=False,
            )
        )
        self._db.commit()
        return updated == 1

    def close(self, session_id, closed_at):
        updated = (
            self._db.query(AttendanceSession)
            .filter_by(id=session_id, status=STATUS_OPEN)
            .update(
                {"status": STATUS_CLOSED, "closed_at": closed_at},
                synchronize_session=False,
            )
        )
        self._db.commit()
        return updated == 1

    def rollback(self):
        self._db.rollback()
