"""Request dependencies: member and acting treasurer resolution."""

import logging

from fastapi import Depends, Header, HTTPException, status

from treasury.services.access_service import Actor

logger = logging.getLogger(__name__)


def _parse_group_ids(raw: str | None) -> frozenset[int]:
    if not raw:
        return frozenset()
    return frozenset(int(part) for part in raw.split(",") if part.strip())


def get_current_member(
    x_user_id: int | None = Header(None),
    x_circle_treasurer: bool = Header(False),
    x_group_ids: str | None = Header(None),
) -> Actor:
    """Build the authenticated member from identity gateway headers.

    Headers:
        X-User-Id: Authenticated user id
        X-Circle-Treasurer: "true" when the user treasures the circle budget
        X-Group-Ids: Comma-separated ids of groups the user treasures

    Raises:
        HTTPException 401: Missing user id
        HTTPException 400: Malformed group id list
    """
    if x_user_id is None:
        logger.warning("Request without X-User-Id header")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="NOT_AUTHORIZED")

    try:
        group_ids = _parse_group_ids(x_group_ids)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Group-Ids must be a comma-separated list of integers",
        )

    return Actor(user_id=x_user_id, is_circle_treasurer=x_circle_treasurer, group_ids=group_ids)


def get_current_actor(member: Actor = Depends(get_current_member)) -> Actor:
    """Require the authenticated member to be a treasurer of some budget.

    Raises:
        HTTPException 403: User is not a treasurer of any budget
    """
    if not member.is_treasurer:
        logger.warning(f"Non-treasurer user_id={member.user_id} called a treasurer endpoint")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Treasurer role required")
    return member
