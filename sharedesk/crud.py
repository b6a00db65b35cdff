import logging
from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from .models.users import User
from .models.session_tokens import SessionToken
from .models.texts import TextPost
from .models.files import FileRecord
from .auth import (
    pwd_ctx,
    hash_password,
    generate_session_token,
    hash_token,
    session_expiry,
    ADMIN_USERNAME,
    ADMIN_PASSWORD,
)

logger = logging.getLogger(__name__)


class UsernameTaken(Exception):
    pass


# users
async def get_user_by_username(db: AsyncSession, username: str):
    q = await db.execute(select(User).where(User.username == username))
    return q.scalars().first()

async def get_user_by_id(db: AsyncSession, user_id: int):
    q = await db.execute(select(User).where(User.id == user_id))
    return q.scalars().first()

async def create_user(db: AsyncSession, username: str, password: str, is_admin: bool = False):
    if await get_user_by_username(db, username):
        raise UsernameTaken(username)
    user = User(username=username, password_hash=hash_password(password), is_admin=is_admin)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise UsernameTaken(username)
    await db.refresh(user)
    logger.info({'msg': 'user_created', 'user_id': user.id, 'is_admin': is_admin})
    return user

async def list_users(db: AsyncSession):
    q = await db.execute(select(User).order_by(User.created_at.asc(), User.id.asc()))
    return q.scalars().all()

async def ensure_admin_exists(db: AsyncSession):
    """Make sure the bootstrap admin account exists.

    Concurrent first requests may both see no row; the unique constraint on
    username rejects the second insert and that conflict counts as success.
    """
    admin = await get_user_by_username(db, ADMIN_USERNAME)
    if admin:
        return admin
    admin = User(username=ADMIN_USERNAME, password_hash=hash_password(ADMIN_PASSWORD), is_admin=True)
    db.add(admin)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        return await get_user_by_username(db, ADMIN_USERNAME)
    await db.refresh(admin)
    logger.info({'msg': 'admin_bootstrapped', 'username': ADMIN_USERNAME})
    return admin


# sessions
async def authenticate_user(db: AsyncSession, username: str, password: str, user_agent: str | None = None, ip: str | None = None):
    """Return ``(user, token)`` for a valid login, ``None`` otherwise."""
    user = await get_user_by_username(db, username)
    if not user:
        # same cost as a real check so unknown names are not distinguishable
        pwd_ctx.dummy_verify()
        return None
    ok, new_hash = pwd_ctx.verify_and_update(password, user.password_hash)
    if not ok:
        return None
    if new_hash:
        user.password_hash = new_hash
    token = generate_session_token()
    st = SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        user_agent=(user_agent or '')[:255] or None,
        ip=ip,
        expires_at=session_expiry(),
    )
    db.add(st)
    await db.commit()
    await db.refresh(user)
    return user, token

async def resolve_session(db: AsyncSession, token: str | None):
    if not token:
        return None
    q = await db.execute(
        select(User)
        .join(SessionToken, SessionToken.user_id == User.id)
        .where(
            SessionToken.token_hash == hash_token(token),
            SessionToken.revoked_at.is_(None),
            SessionToken.expires_at > datetime.now(timezone.utc),
        )
    )
    return q.scalars().first()

async def revoke_session(db: AsyncSession, token: str | None) -> bool:
    if not token:
        return False
    q = await db.execute(select(SessionToken).where(SessionToken.token_hash == hash_token(token), SessionToken.revoked_at.is_(None)))
    st = q.scalars().first()
    if not st:
        return False
    st.revoked_at = datetime.now(timezone.utc)
    await db.commit()
    return True


# texts
async def create_text(db: AsyncSession, owner_id: int, content: str):
    post = TextPost(owner_id=owner_id, content=content)
    db.add(post)
    await db.commit()
    await db.refresh(post)
    return post

async def get_text(db: AsyncSession, text_id: int):
    q = await db.execute(select(TextPost).where(TextPost.id == text_id))
    return q.scalars().first()

async def list_texts(db: AsyncSession, owner_id: int | None = None):
    stmt = select(TextPost).order_by(TextPost.created_at.desc(), TextPost.id.desc())
    if owner_id is not None:
        stmt = stmt.where(TextPost.owner_id == owner_id)
    q = await db.execute(stmt)
    return q.scalars().all()

async def delete_text(db: AsyncSession, post: TextPost):
    await db.delete(post)
    await db.commit()


# files
async def create_file_records(db: AsyncSession, owner_id: int, items):
    """Insert one row per ``items`` entry in a single commit; all or nothing."""
    records = [FileRecord(owner_id=owner_id, **item) for item in items]
    db.add_all(records)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    for record in records:
        await db.refresh(record)
    return records

async def get_file_record(db: AsyncSession, file_id: int):
    q = await db.execute(select(FileRecord).where(FileRecord.id == file_id))
    return q.scalars().first()

async def get_file_by_key(db: AsyncSession, file_key: str):
    q = await db.execute(select(FileRecord).where(FileRecord.file_key == file_key))
    return q.scalars().first()

async def list_files(db: AsyncSession, owner_id: int | None = None):
    stmt = select(FileRecord).order_by(FileRecord.created_at.desc(), FileRecord.id.desc())
    if owner_id is not None:
        stmt = stmt.where(FileRecord.owner_id == owner_id)
    q = await db.execute(stmt)
    return q.scalars().all()

async def delete_file_record(db: AsyncSession, record: FileRecord):
    await db.delete(record)
    await db.commit()
