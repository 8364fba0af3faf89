# services/session_manager.py
import logging
from dataclasses import dataclass
from datetime import timedelta

from errors import InvalidArgument, SessionNotFound
from utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RotationPolicy:
    rotation_seconds: int = 30
    session_minutes: int = 90
    strict_device_binding: bool = True

    def validate(self, min_rotation_seconds):
        if self.rotation_seconds < 1 or self.session_minutes < 1:
            raise InvalidArgument("rotation_seconds and session_minutes must be positive")
        # A token must not outlive more than one scheduler tick past its rotation
        if self.rotation_seconds < min_rotation_seconds:
            raise InvalidArgument(
                "rotation_seconds %d is below the rotation tick of %ds"
                % (self.rotation_seconds, min_rotation_seconds)
            )
        return self


class SessionManager:
    def __init__(self, codec, sessions, marks, policy, min_rotation_seconds,
                 auto_close_expired=False, clock=utcnow):
        self.codec = codec
        self.sessions = sessions
        self.marks = marks
        self.policy = policy.validate(min_rotation_seconds)
        self.min_rotation_seconds = min_rotation_seconds
        self.auto_close_expired = auto_close_expired
        self._clock = clock

    def _issue(self, session_id, class_id, rotation_seconds):
        token = self.codec.sign({"sid": session_id, "classId": class_id}, rotation_seconds)
        return token, self._clock()

    def create_session(self, class_id, subject_id=None, created_by=None, policy=None):
        if not class_id or not isinstance(class_id, str):
            raise InvalidArgument("classId is required")
        if not created_by:
            raise InvalidArgument("createdBy is required")
        policy = (policy or self.policy).validate(self.min_rotation_seconds)

        now = self._clock()
        session = self.sessions.add(
            class_id=class_id,
            subject_id=subject_id,
            created_by=created_by,
            rotation_seconds=policy.rotation_seconds,
            strict_device_binding=policy.strict_device_binding,
            created_at=now,
            end_at=now + timedelta(minutes=policy.session_minutes),
        )
        token, issued_at = self._issue(session.id, class_id, policy.rotation_seconds)
        self.sessions.set_token(session.id, token, issued_at)
        logger.info("Session %s opened for class %s by %s", session.id, class_id, created_by)
        return {
            "sessionId": session.id,
            "token": token,
            "rotationSeconds": policy.rotation_seconds,
            "endAt": isoformat(session.end_at),
        }

    def rotate_tokens(self):
        """
        Re-sign the token of every open session. Sessions are updated one by
        one; a failure is logged and does not stop the others.
        """
        rotated = 0
        for session_id in self.sessions.open_session_ids():
            try:
                session = self.sessions.get(session_id)
                if session is None or not session.is_open:
                    continue
                if self.auto_close_expired and session.end_at <= self._clock():
                    self.sessions.close(session_id, self._clock())
                    logger.info("Session %s reached its end time and was closed", session_id)
                    continue
                token, issued_at = self._issue(session.id, session.class_id, session.rotation_seconds)
                if self.sessions.set_token(session_id, token, issued_at):
                    rotated += 1
            except Exception:
                self.sessions.rollback()
                logger.exception("Token rotation failed for session %s", session_id)
        logger.debug("Rotated tokens for %d open session(s)", rotated)
        return rotated

    def close_session(self, session_id):
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        if self.sessions.close(session_id, self._clock()):
            logger.info("Session %s closed", session_id)
        return True

    def get_session(self, session_id):
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFound()
        return session

    def list_open_sessions(self, class_id=None):
        return self.sessions.list_open(class_id)

    def session_report(self, session_id):
        session = self.get_session(session_id)
        marks = self.marks.list_marks(session_id)
        counts = self.marks.status_counts(session_id)
        total = sum(counts.values())
        rate = round(counts["present"] * 100.0 / total, 2) if total else 0.0
        return {
            "session": session.to_dict(include_token=False),
            "marks": [m.to_dict() for m in marks],
            "events": [e.to_dict() for e in self.marks.list_events(session_id)],
            "stats": dict(counts, total=total, attendanceRate=rate),
        }

    def student_mark(self, session_id, uid):
        """The caller's own mark in one session; ``None`` before any scan."""
        session = self.get_session(session_id)
        return session, self.marks.get(session_id, uid)

    def marks_for_student(self, uid, class_id=None):
        records = []
        for mark, session in self.marks.list_for_user(uid, class_id):
            records.append(dict(
                mark.to_dict(),
                sessionId=session.id,
                classId=session.class_id,
                subjectId=session.subject_id,
                sessionStatus=session.status,
            ))
        return records
