# services/scan_processor.py
import logging

from errors import (AuthRequired, DeviceChangeBlocked, InvalidArgument,
                    SessionClosed, SessionNotFound, TokenError)
from models.attendance_model import EVENT_DEVICE_CHANGE, MARK_STATUSES
from utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)


def normalize_status(status, default="present"):
    if status is not None and not isinstance(status, str):
        raise InvalidArgument("status must be a string")
    status = (status or default).strip().lower()
    if status not in MARK_STATUSES:
        raise InvalidArgument("Unknown attendance status '%s'" % status)
    return status


class ScanProcessor:
    def __init__(self, codec, sessions, marks, clock=utcnow):
        self.codec = codec
        self.sessions = sessions
        self.marks = marks
        self._clock = clock

    def scan(self, session_id, token, caller, device_hash=None, status=None,
             reason=None, note=None):
        if caller is None or not getattr(caller, "uid", None):
            raise AuthRequired()

        # A closed session refuses every scan, whatever the token
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        if not session.is_open:
            raise SessionClosed()

        payload = self.codec.verify(token)
        if payload.get("sid") != session_id:
            raise TokenError(TokenError.BAD_TOKEN)
        status = normalize_status(status)

        now = self._clock()
        accepted, saved = self.marks.record_scan(
            session_id,
            caller.uid,
            status=status,
            at=now,
            device_hash=device_hash or None,
            reason=reason if status == "leave" else None,
            note=note,
            strict=session.strict_device_binding,
        )
        if not accepted:
            self.marks.append_event(
                session_id,
                EVENT_DEVICE_CHANGE,
                caller.uid,
                now,
                saved=saved,
                device_hash=device_hash,
            )
            logger.warning(
                "Device change blocked for %s in session %s", caller.uid, session_id
            )
            raise DeviceChangeBlocked()

        logger.info("Marked %s %s in session %s", caller.uid, status, session_id)
        return {"success": True, "status": status, "at": isoformat(now)}
