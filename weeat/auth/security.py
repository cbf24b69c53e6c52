from __future__ import annotations

from typing import Any

import firebase_admin
import structlog
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials

from weeat.core.config import settings
from weeat.core.errors import AuthenticationError

logger = structlog.get_logger(__name__)

_app: firebase_admin.App | None = None


def _get_firebase_app() -> firebase_admin.App:
    global _app
    if _app is None:
        try:
            _app = firebase_admin.get_app()
        except ValueError:
            if settings.firebase_credentials_path:
                cred = credentials.Certificate(settings.firebase_credentials_path)
            else:
                cred = credentials.ApplicationDefault()
            options = (
                {"projectId": settings.firebase_project_id}
                if settings.firebase_project_id
                else None
            )
            _app = firebase_admin.initialize_app(cred, options)
    return _app


def extract_bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Unauthorized: No token provided")
    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise AuthenticationError("Unauthorized: Malformed token")
    return token


def verify_id_token(id_token: str) -> dict[str, Any]:
    try:
        return firebase_auth.verify_id_token(id_token, app=_get_firebase_app())
    except (
        ValueError,
        firebase_auth.InvalidIdTokenError,
        firebase_auth.CertificateFetchError,
        firebase_auth.UserDisabledError,
    ) as exc:
        logger.warning("id_token_rejected", error=str(exc))
        raise AuthenticationError("Unauthorized: Invalid token") from exc
