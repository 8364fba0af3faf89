# errors.py
"""
Error kinds returned by the attendance core.

Every failure a caller can see maps to exactly one ``code``; routes render
these as ``{"success": False, "error": code, "msg": message}``.
"""


class AttendanceError(Exception):
    code = "error"
    http_status = 400
    default_message = "Request failed"

    def __init__(self, message=None, code=None):
        if code is not None:
            self.code = code
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "error": self.code, "msg": self.message}


class AuthRequired(AttendanceError):
    code = "auth_required"
    http_status = 401
    default_message = "Not logged in"


class PermissionDenied(AttendanceError):
    code = "permission_denied"
    http_status = 403
    default_message = "Not allowed"


class InvalidArgument(AttendanceError):
    code = "invalid_argument"
    default_message = "Invalid request"


class TokenError(AttendanceError):
    """Raised by TokenCodec.verify; ``code`` is one of the reasons below."""

    BAD_TOKEN = "bad_token"
    SIG_MISMATCH = "sig_mismatch"
    EXPIRED = "expired"

    _messages = {
        BAD_TOKEN: "Invalid QR Code",
        SIG_MISMATCH: "Invalid QR Code",
        EXPIRED: "QR Code expired!",
    }

    def __init__(self, reason):
        super().__init__(self._messages.get(reason, "Invalid QR Code"), code=reason)

    @property
    def reason(self):
        return self.code


class SessionNotFound(AttendanceError):
    code = "session_not_found"
    http_status = 404
    default_message = "Session not found"


class SessionClosed(AttendanceError):
    code = "session_closed"
    http_status = 409
    default_message = "Session is closed"


class DeviceChangeBlocked(AttendanceError):
    code = "device_change_blocked"
    http_status = 409
    default_message = "Attendance already recorded from another device"
