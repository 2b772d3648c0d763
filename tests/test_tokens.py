import pytest
from jose import jwt

from exceptions import AuthError
from services.tokens import TokenIssuer, hash_token


def test_issue_then_validate_returns_room_id(issuer):
    token, token_id = issuer.issue("room123")
    assert issuer.validate(token) == "room123"
    assert token_id
    assert jwt.get_unverified_claims(token)["jti"] == token_id


def test_each_issue_is_distinct(issuer):
    first, _ = issuer.issue("room123")
    second, _ = issuer.issue("room123")
    assert first != second


@pytest.mark.parametrize("token", [None, "", "not-a-token", "a.b.c"])
def test_malformed_tokens_are_rejected(issuer, token):
    with pytest.raises(AuthError):
        issuer.validate(token)


def test_token_signed_with_another_key_is_rejected(issuer):
    token, _ = TokenIssuer(secret="someone-else").issue("room123")
    with pytest.raises(AuthError):
        issuer.validate(token)


def test_token_without_room_claim_is_rejected(issuer):
    token = jwt.encode({"jti": "abc"}, "test-secret", algorithm="HS256")
    with pytest.raises(AuthError):
        issuer.validate(token)


def test_hash_token_is_stable():
    assert hash_token("abc") == hash_token("abc")
    assert hash_token("abc") != hash_token("abd")
