"""
Session token helpers.
"""
import jwt
import pytest

from conftest import ALICE, make_settings
from kubekorea.api.auth import (
    ALGORITHM,
    create_session_token,
    decode_session_token,
    parse_bearer,
    user_from_claims,
)
from kubekorea.common.exceptions import AuthenticationRequiredError
from kubekorea.common.messages import ERROR_MESSAGES


class TestSessionToken:

    def test_round_trip(self, settings):
        token = create_session_token(ALICE, "gh-token", settings)

        claims = decode_session_token(token, settings)

        assert claims["sub"] == ALICE.id
        assert claims["accessToken"] == "gh-token"
        assert claims["githubUsername"] == "alice"
        assert claims["exp"] - claims["iat"] == settings.auth_token_ttl

        user = user_from_claims(claims)
        assert user.id == ALICE.id
        assert user.email == ALICE.email
        assert user.github_username == "alice"

    def test_expired_token(self):
        settings = make_settings(auth_token_ttl=-10)
        token = create_session_token(ALICE, None, settings)

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            decode_session_token(token, settings)

        assert str(exc_info.value) == ERROR_MESSAGES["INVALID_TOKEN"]

    def test_wrong_secret(self, settings):
        token = create_session_token(ALICE, None, make_settings(auth_secret="other-secret"))

        with pytest.raises(AuthenticationRequiredError):
            decode_session_token(token, settings)

    def test_garbage_token(self, settings):
        with pytest.raises(AuthenticationRequiredError):
            decode_session_token("not-a-jwt", settings)

    def test_signed_with_hs256(self, settings):
        token = create_session_token(ALICE, None, settings)

        assert jwt.get_unverified_header(token)["alg"] == ALGORITHM == "HS256"


class TestParseBearer:

    def test_bearer(self):
        assert parse_bearer("Bearer abc.def") == "abc.def"
        assert parse_bearer("bearer abc") == "abc"

    def test_rejects_other_schemes(self):
        assert parse_bearer(None) is None
        assert parse_bearer("") is None
        assert parse_bearer("Basic dXNlcg==") is None
        assert parse_bearer("Bearer") is None
