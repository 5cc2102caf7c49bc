"""
Request dependencies for FastAPI.

Authentication is handled upstream of this service; callers identify
themselves with the X-Actor header, which is recorded on documents and in
the action log.
"""

from dataclasses import dataclass
from typing import Optional
from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.db.session import get_db
from backend.app.db.document_store import DocumentStore


@dataclass
class Actor:
    """Who is making the request."""
    username: Optional[str]
    ip_address: Optional[str]


async def get_actor(
    request: Request,
    x_actor: Optional[str] = Header(None, max_length=100, description="Name of the acting user")
) -> Actor:
    """
    FastAPI dependency resolving the acting user and client address.

    Returns:
        Actor with the trimmed X-Actor value (None when absent) and client IP
    """
    username = x_actor.strip() if x_actor and x_actor.strip() else None
    ip_address = request.client.host if request.client else None
    return Actor(username=username, ip_address=ip_address)


async def get_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    """FastAPI dependency providing a DocumentStore bound to the request session."""
    return DocumentStore(db)
