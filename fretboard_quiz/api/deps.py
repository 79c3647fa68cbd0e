"""
Shared API dependencies
"""
from fastapi import Header, Request
from typing import Optional
from uuid import UUID

from fretboard_quiz.utils.errors import Unauthorized

USER_ID_HEADER = "X-User-Id"


async def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias=USER_ID_HEADER),
) -> UUID:
    """
    Caller identity as established by the upstream auth layer

    Raises:
        Unauthorized: header missing or not a UUID
    """
    if not x_user_id:
        raise Unauthorized("Authentication required")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise Unauthorized("Invalid user identity") from None

    request.state.user_id = user_id
    return user_id
