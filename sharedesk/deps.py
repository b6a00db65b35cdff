"""
FastAPI dependencies: storage bindings and session guards.

The database session factory and blob store are read from ``app.state`` so the
application can be built with any binding (see ``main.create_app``).
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import SESSION_COOKIE_NAME
from .crud import resolve_session
from .errors import Forbidden, Unauthenticated
from .models.users import User
from .storage import BlobStore


async def get_db(request: Request):
    async with request.app.state.session_factory() as session:
        yield session


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


async def get_optional_user(request: Request, db: AsyncSession = Depends(get_db)) -> User | None:
    return await resolve_session(db, request.cookies.get(SESSION_COOKIE_NAME))


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if not user:
        raise Unauthenticated()
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise Forbidden('Admin only')
    return user


def ensure_can_modify(user: User, owner_id: int) -> None:
    if user.is_admin or user.id == owner_id:
        return
    raise Forbidden('Only the owner or an admin can do this')
