import logging
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession
from ..schemas.users import LoginIn, LoginOut, ActionOkOut
from ..crud import authenticate_user, revoke_session
from ..auth import SESSION_COOKIE_NAME, SESSION_TTL_HOURS, COOKIE_SECURE
from ..core import LOGIN_ATTEMPTS
from ..deps import get_db
from ..errors import InvalidCredentials

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post('/login', response_model=LoginOut)
async def login(
    payload: LoginIn,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    result = await authenticate_user(
        db,
        payload.username,
        payload.password,
        user_agent=request.headers.get('user-agent'),
        ip=request.client.host if request.client else None,
    )
    if not result:
        LOGIN_ATTEMPTS.labels(outcome='failure').inc()
        logger.info({'msg': 'login_failed'})
        raise InvalidCredentials()

    user, token = result
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=SESSION_TTL_HOURS * 3600,
        httponly=True,
        samesite='lax',
        secure=COOKIE_SECURE,
    )
    LOGIN_ATTEMPTS.labels(outcome='success').inc()
    logger.info({'msg': 'login_ok', 'user_id': user.id})
    return {'ok': True, 'user': user}


@router.post('/logout', response_model=ActionOkOut)
async def logout(
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    # Unknown or already revoked tokens are fine; the cookie is cleared anyway
    revoked = await revoke_session(db, request.cookies.get(SESSION_COOKIE_NAME))
    response.delete_cookie(SESSION_COOKIE_NAME, httponly=True, samesite='lax', secure=COOKIE_SECURE)
    logger.info({'msg': 'logout', 'revoked': revoked})
    return {'ok': True}
