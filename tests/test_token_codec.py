import base64
import hmac
import json

import pytest

from errors import TokenError
from utils.token_codec import TokenCodec


@pytest.fixture
def codec(clock):
    return TokenCodec("unit-test-secret", clock=clock)


def test_sign_then_verify_returns_payload(codec, clock):
    token = codec.sign({"sid": "S1", "classId": "C1"}, 30)

    payload = codec.verify(token)

    jti = payload.pop("jti")
    assert payload == {"sid": "S1", "classId": "C1", "exp": int(clock.now) + 30}
    assert len(jti) == 32


def test_token_wire_format(codec, clock):
    token = codec.sign({"sid": "S1", "classId": "C1"}, 30)
    data, signature = token.rsplit(".", 1)

    raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4)).decode()
    decoded = json.loads(raw)
    assert list(decoded) == ["classId", "exp", "jti", "sid"]
    assert raw == json.dumps(decoded, sort_keys=True, separators=(",", ":"))
    assert decoded["exp"] == int(clock.now) + 30
    assert "=" not in token
    assert len(base64.urlsafe_b64decode(signature + "=" * (-len(signature) % 4))) == 32


def test_tokens_signed_in_the_same_second_differ(codec):
    first = codec.sign({"sid": "S1", "classId": "C1"}, 10)
    second = codec.sign({"sid": "S1", "classId": "C1"}, 10)

    assert first != second
    assert codec.verify(first)["jti"] != codec.verify(second)["jti"]


def test_caller_supplied_jti_is_kept(codec):
    token = codec.sign({"sid": "S1", "classId": "C1", "jti": "fixed"}, 10)

    assert codec.verify(token)["jti"] == "fixed"


def test_token_expires_after_ttl(codec, clock):
    token = codec.sign({"sid": "S1", "classId": "C1"}, 1)
    clock.advance(2)

    with pytest.raises(TokenError) as exc:
        codec.verify(token)

    assert exc.value.reason == "expired"


def test_token_still_valid_at_exact_expiry(codec, clock):
    token = codec.sign({"sid": "S1", "classId": "C1"}, 5)
    clock.advance(5)

    assert codec.verify(token)["sid"] == "S1"


def test_any_flipped_bit_is_rejected(codec):
    token = codec.sign({"sid": "S1", "classId": "C1"}, 30)

    for index, char in enumerate(token):
        if char == ".":
            continue
        for bit in (1, 2, 4, 8, 16, 32, 64):
            tampered = token[:index] + chr(ord(char) ^ bit) + token[index + 1:]
            with pytest.raises(TokenError) as exc:
                codec.verify(tampered)
            assert exc.value.reason in ("sig_mismatch", "bad_token")


def test_other_secret_is_a_signature_mismatch(codec, clock):
    token = TokenCodec("someone-else", clock=clock).sign({"sid": "S1", "classId": "C1"}, 30)

    with pytest.raises(TokenError) as exc:
        codec.verify(token)

    assert exc.value.reason == "sig_mismatch"


@pytest.mark.parametrize("token", ["", "no-dot-here", "abc.", ".abc", None, 12345])
def test_malformed_tokens_are_bad_tokens(codec, token):
    with pytest.raises(TokenError) as exc:
        codec.verify(token)

    assert exc.value.reason == "bad_token"


def test_validly_signed_garbage_is_a_bad_token(codec):
    data = base64.urlsafe_b64encode(b"not json").rstrip(b"=").decode()
    token = data + "." + codec._signature(data)

    with pytest.raises(TokenError) as exc:
        codec.verify(token)

    assert exc.value.reason == "bad_token"


def test_signature_check_uses_constant_time_compare(codec, monkeypatch):
    calls = []
    real = hmac.compare_digest

    def spy(a, b):
        calls.append((a, b))
        return real(a, b)

    monkeypatch.setattr("utils.token_codec.hmac.compare_digest", spy)
    codec.verify(codec.sign({"sid": "S1", "classId": "C1"}, 30))

    assert len(calls) == 1


@pytest.mark.parametrize("ttl", [0, -5, 1.5, True])
def test_sign_rejects_bad_ttl(codec, ttl):
    with pytest.raises(ValueError):
        codec.sign({"sid": "S1", "classId": "C1"}, ttl)


def test_sign_requires_session_and_class(codec):
    with pytest.raises(ValueError):
        codec.sign({"sid": "S1"}, 30)
