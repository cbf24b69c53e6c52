from __future__ import annotations

import anyio
from fastapi import Header

from weeat.auth import security
from weeat.core.config import settings
from weeat.core.errors import ForbiddenError
from weeat.core.logging import user_id_ctx


async def get_current_uid(authorization: str | None = Header(default=None)) -> str:
    """Return the uid of the verified ID token in the Authorization header."""
    token = security.extract_bearer_token(authorization)
    decoded = await anyio.to_thread.run_sync(security.verify_id_token, token)
    uid = decoded["uid"]
    user_id_ctx.set(uid)
    return uid


async def require_owner(user_id: str, authorization: str | None = Header(default=None)) -> str:
    """Raise unless the caller's token belongs to ``user_id``.

    With auth disabled the path user id is trusted as is.
    """
    if not settings.auth_enabled:
        user_id_ctx.set(user_id)
        return user_id
    uid = await get_current_uid(authorization)
    if uid != user_id:
        raise ForbiddenError("Forbidden")
    return uid
