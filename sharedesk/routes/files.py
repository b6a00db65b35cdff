from urllib.parse import quote
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from ..schemas.content import ShareIn, ShareLinkOut
from ..crud import get_file_by_key
from ..auth import create_share_token, share_token_allows, SHARE_LINK_TTL_MINUTES
from ..deps import get_db, get_blob_store, get_optional_user, get_current_user, ensure_can_modify
from ..errors import NotFound, Unauthenticated, StorageUnavailable
from ..models.users import User
from ..storage import BlobStore, BlobNotFound, BlobStoreError

INLINE_TYPES = {
    'text/plain',
    'application/pdf',
    'image/png',
    'image/jpeg',
    'image/gif',
    'image/webp',
    'audio/mpeg',
    'video/mp4',
}

router = APIRouter()


@router.get('/file/{file_key}')
async def download(
    file_key: str,
    token: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    """Any logged-in user may fetch a file by key; anonymous clients need a share token."""
    if not user and not (token and share_token_allows(token, file_key)):
        raise Unauthenticated()

    record = await get_file_by_key(db, file_key)
    if not record:
        raise NotFound('File not found')
    try:
        data = await blob_store.get(file_key)
    except BlobNotFound:
        raise NotFound('File not found')
    except BlobStoreError:
        raise StorageUnavailable()

    # anything that could carry script is served as a download
    disposition = 'inline' if _base_type(record.file_type) in INLINE_TYPES else 'attachment'
    return Response(
        content=data,
        headers={
            'Content-Type': record.file_type,
            'Content-Disposition': f"{disposition}; filename*=UTF-8''{quote(record.filename)}",
            'X-Content-Type-Options': 'nosniff',
        },
    )


def _base_type(content_type: str) -> str:
    return content_type.split(';', 1)[0].strip().lower()


@router.post('/share', response_model=ShareLinkOut)
async def share(
    payload: ShareIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    record = await get_file_by_key(db, payload.file_key)
    if not record:
        raise NotFound('File not found')
    ensure_can_modify(user, record.owner_id)

    token = create_share_token(record.file_key)
    return {
        'url': f'/file/{record.file_key}?token={token}',
        'expires_in': SHARE_LINK_TTL_MINUTES * 60,
    }
