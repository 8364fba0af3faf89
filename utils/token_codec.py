# utils/token_codec.py
import base64
import binascii
import hashlib
import hmac
import json
import time
import uuid

from errors import TokenError

REQUIRED_CLAIMS = ("sid", "classId")


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> bytes:
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


class TokenCodec:
    """
    Signs and verifies the compact QR check-in tokens:

        base64url(JSON{sid, classId, exp, jti}) + "." + base64url(HMAC-SHA256(secret, data))

    The secret is passed in so tests (and a future key rotation) can use
    alternate keys. ``clock`` returns epoch seconds. ``jti`` is unique per
    token, so two tokens signed in the same second still differ.
    """

    def __init__(self, secret, clock=time.time):
        if not secret:
            raise ValueError("TokenCodec needs a non-empty secret")
        self._key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)
        self._clock = clock

    def _signature(self, data: str) -> str:
        digest = hmac.new(self._key, data.encode("ascii"), hashlib.sha256).digest()
        return _b64url_encode(digest)

    def sign(self, payload: dict, ttl_seconds: int) -> str:
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be a positive integer")
        missing = [k for k in REQUIRED_CLAIMS if k not in payload]
        if missing:
            raise ValueError("token payload is missing %s" % ", ".join(missing))

        body = dict(payload)
        body["exp"] = int(self._clock()) + ttl_seconds
        body.setdefault("jti", uuid.uuid4().hex)
        serialized = json.dumps(body, sort_keys=True, separators=(",", ":"))
        data = _b64url_encode(serialized.encode("utf-8"))
        return data + "." + self._signature(data)

    def verify(self, token: str) -> dict:
        """
        Returns the decoded payload (``exp`` included) or raises TokenError
        with reason ``bad_token``, ``sig_mismatch`` or ``expired``.
        """
        if not isinstance(token, str):
            raise TokenError(TokenError.BAD_TOKEN)
        data, sep, supplied = token.rpartition(".")
        if not sep or not data or not supplied:
            raise TokenError(TokenError.BAD_TOKEN)

        try:
            data.encode("ascii")
        except UnicodeEncodeError:
            raise TokenError(TokenError.BAD_TOKEN)

        expected = self._signature(data)
        if not hmac.compare_digest(expected.encode("ascii"), supplied.encode("utf-8")):
            raise TokenError(TokenError.SIG_MISMATCH)

        try:
            payload = json.loads(_b64url_decode(data).decode("utf-8"))
        except (binascii.Error, ValueError):
            raise TokenError(TokenError.BAD_TOKEN)

        exp = payload.get("exp") if isinstance(payload, dict) else None
        if isinstance(exp, bool) or not isinstance(exp, int):
            raise TokenError(TokenError.BAD_TOKEN)
        if exp < self._clock():
            raise TokenError(TokenError.EXPIRED)
        return payload
