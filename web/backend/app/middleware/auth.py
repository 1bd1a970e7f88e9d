"""Reviewer identity -- FastAPI dependency for moderation endpoints.

Authentication is handled upstream (gateway or session layer); by the time
a request reaches this service the reviewer is identified by the
``X-Reviewer-Id`` header.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status


async def get_reviewer_id(
    x_reviewer_id: Optional[str] = Header(None, alias="X-Reviewer-Id"),
) -> str:
    """Return the acting reviewer's id.

    Raises ``401 Unauthorized`` if the header is missing or blank.
    """
    if x_reviewer_id and x_reviewer_id.strip():
        return x_reviewer_id.strip()

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Reviewer identity required",
    )
