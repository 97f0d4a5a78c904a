import secrets

from fastapi import Header, HTTPException, status

from academy.core.config import settings


def require_admin(x_admin_token: str | None = Header(default=None)) -> None:
    if x_admin_token is None or not secrets.compare_digest(x_admin_token, settings.ADMIN_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin token required",
        )
