# services/role_resolver.py
import logging

from models.user_model import UserProfile

logger = logging.getLogger(__name__)


class RoleResolver:
    """Answers whether a caller may run staff-only and corrective operations."""

    def is_privileged(self, caller) -> bool:
        raise NotImplementedError


class ProfileRoleResolver(RoleResolver):
    """
    A caller is privileged when any one of these holds:
      - the identity token carries ``admin: true``
      - their profile is flagged HR, instructor or super-admin
      - their email is on the administrator allowlist
    """

    def __init__(self, session, admin_emails=()):
        self._db = session
        self._admin_emails = {e.strip().lower() for e in admin_emails if e and e.strip()}

    def is_privileged(self, caller) -> bool:
        if caller is None:
            return False
        if caller.is_admin_claim:
            return True

        profile = self._db.get(UserProfile, caller.uid)
        if profile is not None and profile.is_staff:
            return True

        email = (caller.email or (profile.email if profile else None) or "").strip().lower()
        if email and email in self._admin_emails:
            return True

        logger.debug("Caller %s has no privileged role", caller.uid)
        return False
