import jwt
import pytest

from conftest import IDENTITY_SECRET
from errors import AuthRequired
from utils.identity import decode_identity_token


def test_decode_identity_token_reads_claims():
    token = jwt.encode({"sub": "u1", "email": "u1@example.edu", "admin": True}, IDENTITY_SECRET, algorithm="HS256")

    caller = decode_identity_token(token, IDENTITY_SECRET)

    assert caller.uid == "u1"
    assert caller.email == "u1@example.edu"
    assert caller.is_admin_claim is True


def test_admin_claim_must_be_true_exactly():
    token = jwt.encode({"sub": "u1", "admin": "yes"}, IDENTITY_SECRET, algorithm="HS256")

    assert decode_identity_token(token, IDENTITY_SECRET).is_admin_claim is False


@pytest.mark.parametrize("claims,secret", [
    ({"sub": "u1"}, "another-secret-that-is-long-enough-0123"),
    ({"email": "nobody@example.edu"}, IDENTITY_SECRET),
    ({"sub": "u1", "exp": 1}, IDENTITY_SECRET),
])
def test_bad_identity_tokens_need_login(claims, secret):
    token = jwt.encode(claims, secret, algorithm="HS256")

    with pytest.raises(AuthRequired):
        decode_identity_token(token, IDENTITY_SECRET)
