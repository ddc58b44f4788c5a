"""FastAPI dependencies shared by feature packages.

Provides dependency injection for:
- Current student id, taken from the header set by the upstream auth gateway
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.config.settings import get_settings
from src.core.context import set_user_id


async def get_current_user_id(request: Request) -> UUID:
    """Get the authenticated student id.

    Authentication happens upstream; this service trusts the identity header.

    Raises:
        HTTPException(401): If the header is missing or not a UUID
    """
    raw = request.headers.get(get_settings().user_id_header)
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing user identity",
        )

    try:
        user_id = UUID(raw)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user identity",
        ) from e

    # Set user_id in context for logging
    set_user_id(str(user_id))
    return user_id


CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
