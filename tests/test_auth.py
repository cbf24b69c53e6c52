from __future__ import annotations

from unittest.mock import patch

import pytest
from firebase_admin import auth as firebase_auth

from weeat.auth import security
from weeat.core.errors import AuthenticationError


def test_extract_bearer_token() -> None:
    assert security.extract_bearer_token("Bearer abc.def") == "abc.def"


@pytest.mark.parametrize(
    ("header", "message"),
    [
        (None, "No token provided"),
        ("", "No token provided"),
        ("Token abc", "Malformed token"),
        ("Bearer ", "Malformed token"),
        ("abc", "Malformed token"),
    ],
)
def test_extract_bearer_token_rejects_bad_headers(header, message) -> None:
    with pytest.raises(AuthenticationError, match=message):
        security.extract_bearer_token(header)


def test_verify_id_token_returns_claims() -> None:
    with (
        patch.object(security, "_get_firebase_app", return_value=object()),
        patch.object(firebase_auth, "verify_id_token", return_value={"uid": "user-1"}) as mock_verify,
    ):
        claims = security.verify_id_token("good-token")

    assert claims == {"uid": "user-1"}
    assert mock_verify.call_args.args[0] == "good-token"


@pytest.mark.parametrize(
    "error",
    [
        ValueError("empty token"),
        firebase_auth.InvalidIdTokenError("bad signature"),
        firebase_auth.ExpiredIdTokenError("expired", cause=None),
    ],
)
def test_verify_id_token_wraps_firebase_errors(error) -> None:
    with (
        patch.object(security, "_get_firebase_app", return_value=object()),
        patch.object(firebase_auth, "verify_id_token", side_effect=error),
    ):
        with pytest.raises(AuthenticationError, match="Invalid token"):
            security.verify_id_token("bad-token")


def test_firebase_app_reuses_existing_app(monkeypatch) -> None:
    existing = object()
    monkeypatch.setattr(security, "_app", None)

    with (
        patch.object(security.firebase_admin, "get_app", return_value=existing),
        patch.object(security.firebase_admin, "initialize_app") as mock_init,
    ):
        assert security._get_firebase_app() is existing

    mock_init.assert_not_called()


def test_firebase_app_is_initialized_once(monkeypatch) -> None:
    created = object()
    monkeypatch.setattr(security, "_app", None)
    monkeypatch.setattr(security.settings, "firebase_credentials_path", None)
    monkeypatch.setattr(security.settings, "firebase_project_id", "weeat-test")

    with (
        patch.object(security.firebase_admin, "get_app", side_effect=ValueError("no app")),
        patch.object(security.credentials, "ApplicationDefault", return_value="adc") as mock_adc,
        patch.object(security.firebase_admin, "initialize_app", return_value=created) as mock_init,
    ):
        assert security._get_firebase_app() is created
        assert security._get_firebase_app() is created

    mock_adc.assert_called_once()
    mock_init.assert_called_once_with("adc", {"projectId": "weeat-test"})
