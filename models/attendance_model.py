from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError

from models import db
from models.session_model import AttendanceSession
from utils.clock import isoformat

MARK_STATUSES = ("present", "absent", "late", "leave")

EVENT_DEVICE_CHANGE = "anomaly_device_change"
EVENT_MANUAL_OVERRIDE = "manual_override"


class AttendanceMark(db.Model):
    __tablename__ = "attendance_mark"
    __table_args__ = (db.UniqueConstraint("session_id", "uid", name="uq_mark_session_uid"),)

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(32), db.ForeignKey("attendance_session.id"), nullable=False, index=True)
    uid = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(10), nullable=False, default="present")
    device_hash = db.Column(db.String(256), nullable=True)
    reason = db.Column(db.String(50), nullable=True)  # only with status "leave"
    note = db.Column(db.Text, nullable=True)
    at = db.Column(db.DateTime, nullable=False)
    manual = db.Column(db.Boolean, nullable=False, default=False)
    overridden_by = db.Column(db.String(128), nullable=True)
    overridden_at = db.Column(db.DateTime, nullable=True)

    def to_dict(self):
        data = {
            "uid": self.uid,
            "status": self.status,
            "deviceHash": self.device_hash,
            "reason": self.reason,
            "note": self.note,
            "at": isoformat(self.at),
        }
        if self.manual:
            data.update({
                "manual": True,
                "overriddenBy": self.overridden_by,
                "overriddenAt": isoformat(self.overridden_at),
            })
        return data


class AttendanceEvent(db.Model):
    """Audit log row. Written once, never updated or deleted."""

    __tablename__ = "attendance_event"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(32), db.ForeignKey("attendance_session.id"), nullable=False, index=True)
    type = db.Column(db.String(40), nullable=False)
    uid = db.Column(db.String(128), nullable=False)
    at = db.Column(db.DateTime, nullable=False)
    # anomaly_device_change
    saved = db.Column(db.String(256), nullable=True)
    device_hash = db.Column(db.String(256), nullable=True)
    # manual_override
    status = db.Column(db.String(10), nullable=True)
    actor = db.Column(db.String(128), nullable=True)
    reason = db.Column(db.String(50), nullable=True)
    note = db.Column(db.Text, nullable=True)

    def to_dict(self):
        data = {"type": self.type, "uid": self.uid, "at": isoformat(self.at)}
        if self.type == EVENT_DEVICE_CHANGE:
            data.update({"saved": self.saved, "deviceHash": self.device_hash})
        elif self.type == EVENT_MANUAL_OVERRIDE:
            data.update({
                "status": self.status,
                "actor": self.actor,
                "reason": self.reason,
                "note": self.note,
            })
        return data


class MarkStore:
    """Per-student marks and the audit event log of each session."""

    def __init__(self, session):
        self._db = session

    def _mark_query(self, session_id, uid):
        return self._db.query(AttendanceMark).filter_by(session_id=session_id, uid=uid)

    def get(self, session_id, uid):
        return self._mark_query(session_id, uid).first()

    def record_scan(self, session_id, uid, status, at, device_hash=None,
                    reason=None, note=None, strict=True):
        """
        Upsert the caller's mark in one compare-and-swap on ``device_hash``.

        Returns ``(True, None)`` when written, or ``(False, saved_hash)`` when
        the mark is bound to a different device. The binding check happens in
        the UPDATE's WHERE clause so two concurrent scans cannot both pass it.
        """
        values = {
            "status": status,
            "reason": reason,
            "note": note,
            "at": at,
            "manual": False,
            "overridden_by": None,
            "overridden_at": None,
        }
        if strict or device_hash is not None:
            values["device_hash"] = device_hash

        for attempt in range(2):
            query = self._mark_query(session_id, uid)
            if strict:
                if device_hash is None:
                    query = query.filter(AttendanceMark.device_hash.is_(None))
                else:
                    query = query.filter(or_(
                        AttendanceMark.device_hash.is_(None),
                        AttendanceMark.device_hash == device_hash,
                    ))
            if query.update(values, synchronize_session=False):
                self._db.commit()
                return True, None

            existing = (
                self._db.query(AttendanceMark.device_hash)
                .filter_by(session_id=session_id, uid=uid)
                .first()
            )
            if existing is not None:
                self._db.commit()
                return False, existing[0]

            self._db.add(AttendanceMark(session_id=session_id, uid=uid, **values))
            try:
                self._db.commit()
                return True, None
            except IntegrityError:
                # Lost the insert race to a concurrent scan; retry as an update
                self._db.rollback()
                if attempt:
                    raise

    def apply_override(self, session_id, uid, status, actor, at, reason=None, note=None):
        """
        Write a manual mark and its manual_override event in one commit.

        As with scans, the mark keeps ``reason`` only for status "leave"; the
        event records the reason the actor gave.
        """
        for attempt in range(2):
            mark = self.get(session_id, uid)
            if mark is None:
                mark = AttendanceMark(session_id=session_id, uid=uid)
                self._db.add(mark)
            mark.status = status
            mark.reason = reason if status == "leave" else None
            mark.note = note
            mark.at = at
            mark.manual = True
            mark.overridden_by = actor
            mark.overridden_at = at
            self._db.add(AttendanceEvent(
                session_id=session_id,
                type=EVENT_MANUAL_OVERRIDE,
                uid=uid,
                at=at,
                status=status,
                actor=actor,
                reason=reason,
                note=note,
            ))
            try:
                self._db.commit()
                return mark
            except IntegrityError:
                self._db.rollback()
                if attempt:
                    raise

    def append_event(self, session_id, event_type, uid, at, **fields):
        event = AttendanceEvent(session_id=session_id, type=event_type, uid=uid, at=at, **fields)
        self._db.add(event)
        self._db.commit()
        return event

    def list_marks(self, session_id):
        return (
            self._db.query(AttendanceMark)
            .filter_by(session_id=session_id)
            .order_by(AttendanceMark.uid)
            .all()
        )

    def list_for_user(self, uid, class_id=None):
        query = (
            self._db.query(AttendanceMark, AttendanceSession)
            .join(AttendanceSession, AttendanceSession.id == AttendanceMark.session_id)
            .filter(AttendanceMark.uid == uid)
        )
        if class_id:
            query = query.filter(AttendanceSession.class_id == class_id)
        return query.order_by(AttendanceSession.created_at.desc(), AttendanceSession.id).all()

    def list_events(self, session_id, uid=None):
        query = self._db.query(AttendanceEvent).filter_by(session_id=session_id)
        if uid is not None:
            query = query.filter_by(uid=uid)
        return query.order_by(AttendanceEvent.id).all()

    def status_counts(self, session_id):
        rows = (
            self._db.query(AttendanceMark.status, func.count(AttendanceMark.id))
            .filter_by(session_id=session_id)
            .group_by(AttendanceMark.status)
            .all()
        )
        counts = {status: 0 for status in MARK_STATUSES}
        counts.update({status: count for status, count in rows})
        return counts
