# services/override_service.py
import logging

from errors import AuthRequired, InvalidArgument, PermissionDenied, SessionNotFound
from services.scan_processor import normalize_status
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class OverrideService:
    """Privileged corrections to marks. Allowed on closed sessions too."""

    def __init__(self, sessions, marks, roles, clock=utcnow):
        self.sessions = sessions
        self.marks = marks
        self.roles = roles
        self._clock = clock

    def override(self, session_id, target_uid, new_status, actor, reason=None, note=None):
        if actor is None or not getattr(actor, "uid", None):
            raise AuthRequired()
        if not self.roles.is_privileged(actor):
            logger.warning("Override on session %s refused for %s", session_id, actor.uid)
            raise PermissionDenied()
        if not target_uid:
            raise InvalidArgument("uid is required")
        if not new_status:
            raise InvalidArgument("status is required")
        status = normalize_status(new_status)

        if self.sessions.get(session_id) is None:
            raise SessionNotFound()

        mark = self.marks.apply_override(
            session_id,
            target_uid,
            status=status,
            actor=actor.uid,
            at=self._clock(),
            reason=reason,
            note=note,
        )
        logger.info(
            "Override by %s: %s marked %s in session %s",
            actor.uid, target_uid, status, session_id,
        )
        return mark
