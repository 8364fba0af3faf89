# utils/identity.py
from dataclasses import dataclass, field

import jwt
from flask import current_app, request

from errors import AuthRequired


@dataclass(frozen=True)
class Caller:
    """Authenticated identity handed to every operation by the identity provider."""

    uid: str
    email: str = None
    claims: dict = field(default_factory=dict)

    @property
    def is_admin_claim(self):
        return self.claims.get("admin") is True


def decode_identity_token(token: str, secret: str, algo: str = "HS256") -> Caller:
    """
    Decode an identity provider JWT. Any decoding failure, or a token
    without a ``sub``, means the caller is not authenticated.
    """
    try:
        claims = jwt.decode(token, secret, algorithms=[algo])
    except jwt.PyJWTError:
        raise AuthRequired("Invalid or expired login")
    uid = claims.get("sub")
    if not uid:
        raise AuthRequired("Login token has no subject")
    return Caller(uid=str(uid), email=claims.get("email"), claims=claims)


def caller_from_request(required=True):
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        if required:
            raise AuthRequired()
        return None
    return decode_identity_token(
        token.strip(),
        current_app.config["IDENTITY_JWT_SECRET"],
        current_app.config.get("IDENTITY_JWT_ALGO", "HS256"),
    )
