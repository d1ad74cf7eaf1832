"""API key guard for the /integrity routes.

The health check and route listing in main.py stay open; only the goal,
progress, score and rank endpoints are protected.
"""

from fastapi import Header, HTTPException

from integrity.config import settings


async def verify_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
    authorization: str | None = Header(default=None),
) -> str:
    """Accept the key from X-API-Key or an Authorization: Bearer header.

    With INTEGRITY_API_KEY unset every request passes, which is the local
    single-user setup. Once it is set, a missing or wrong key is a 401.
    """
    if settings.api_key is None:
        return ""

    key = x_api_key
    if key is None and authorization and authorization.startswith("Bearer "):
        key = authorization[7:].strip()

    if key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")

    return key
