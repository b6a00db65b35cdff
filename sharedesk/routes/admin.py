from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession
from ..schemas.users import UserCreateIn, UserOut
from ..crud import create_user, list_users, UsernameTaken
from ..deps import get_db, get_admin_user
from ..errors import Conflict
from ..models.users import User
from ..rendering import render_admin

router = APIRouter()


@router.get('/admin', response_class=HTMLResponse)
async def admin_panel(
    request: Request,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db)
):
    users = await list_users(db)
    return render_admin(request, admin, users)


@router.post('/add-user', response_model=UserOut)
async def add_user(
    payload: UserCreateIn,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db)
):
    try:
        user = await create_user(db, payload.username, payload.password)
    except UsernameTaken:
        raise Conflict('Username already exists')
    return user
