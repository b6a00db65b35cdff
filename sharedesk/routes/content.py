"""
History routes: home page, text posts, uploads and deletion.
"""

import os
import logging
import mimetypes
from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import HTMLResponse
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from ..schemas.content import TextIn, TextOut, UploadOut, DeleteIn
from ..schemas.users import ActionOkOut
from ..crud import (
    create_text,
    get_text,
    list_texts,
    delete_text,
    create_file_records,
    get_file_record,
    list_files,
    delete_file_record,
)
from ..core import UPLOADED_FILES, UPLOADED_BYTES, DELETED_ITEMS
from ..deps import get_db, get_blob_store, get_optional_user, get_current_user, ensure_can_modify
from ..errors import NotFound, ValidationError, StorageUnavailable
from ..models.users import User
from ..rendering import render_home
from ..storage import BlobStore, BlobStoreError, generate_file_key

logger = logging.getLogger(__name__)

MAX_UPLOAD_SIZE = int(os.getenv('MAX_UPLOAD_SIZE', str(50 * 1024 * 1024)))  # 50MB
MAX_NAME_LENGTH = 255  # width of files.filename and files.file_type

router = APIRouter()


@router.get('/', response_class=HTMLResponse)
async def home(
    request: Request,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    if not user:
        return render_home(request)

    # Admins see every user's history so they can moderate it
    owner_id = None if user.is_admin else user.id
    texts = await list_texts(db, owner_id)
    files = await list_files(db, owner_id)
    return render_home(request, user, texts, files)


@router.post('/send-text', response_model=TextOut)
async def send_text(
    payload: TextIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    post = await create_text(db, user.id, payload.content)
    logger.info({'msg': 'text_created', 'user_id': user.id, 'text_id': post.id})
    return post


@router.post('/upload', response_model=UploadOut)
async def upload(
    files: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    if not files:
        raise ValidationError('No files uploaded')

    # Validate every part before anything is written; the spooled size is
    # known without reading the body into memory
    for f in files:
        _check_part(f)

    # All blobs first, then every row in a single commit. Any failure removes
    # the blobs written so far, so a failed request leaves nothing behind.
    written = []
    try:
        for f in files:
            data = await f.read()
            if len(data) > MAX_UPLOAD_SIZE:
                raise _too_large(f)
            file_key = generate_file_key()
            file_type = f.content_type or mimetypes.guess_type(f.filename)[0] or 'application/octet-stream'
            try:
                await blob_store.put(file_key, data, file_type)
            except BlobStoreError as e:
                logger.error({'msg': 'blob_put_failed', 'file_key': file_key, 'error': str(e)})
                raise StorageUnavailable()
            written.append({'filename': f.filename, 'file_key': file_key, 'size': len(data), 'file_type': file_type})

        records = await create_file_records(db, user.id, written)
    except Exception:
        await _discard_blobs(blob_store, [item['file_key'] for item in written])
        raise

    for record in records:
        UPLOADED_FILES.inc()
        UPLOADED_BYTES.inc(record.size)
        logger.info({'msg': 'file_uploaded', 'user_id': user.id, 'file_key': record.file_key, 'size': record.size})
    return {'files': records}


def _too_large(f: UploadFile) -> ValidationError:
    return ValidationError(f"{f.filename} is too large. Max size is {MAX_UPLOAD_SIZE} bytes")


def _check_part(f: UploadFile) -> None:
    if not f.filename:
        raise ValidationError('No files uploaded')
    if len(f.filename) > MAX_NAME_LENGTH:
        raise ValidationError(f"Filename is longer than {MAX_NAME_LENGTH} characters")
    if f.content_type and len(f.content_type) > MAX_NAME_LENGTH:
        raise ValidationError(f"Content type of {f.filename} is longer than {MAX_NAME_LENGTH} characters")
    if f.size is not None and f.size > MAX_UPLOAD_SIZE:
        raise _too_large(f)


async def _discard_blobs(blob_store: BlobStore, keys):
    for key in keys:
        try:
            await blob_store.delete(key)
        except BlobStoreError as e:
            logger.warning({'msg': 'blob_cleanup_failed', 'file_key': key, 'error': str(e)})


@router.post('/delete', response_model=ActionOkOut)
async def delete(
    payload: DeleteIn,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    if payload.kind == 'text':
        post = await get_text(db, payload.id)
        if not post:
            raise NotFound('Text not found')
        ensure_can_modify(user, post.owner_id)
        await delete_text(db, post)
    else:
        record = await get_file_record(db, payload.id)
        if not record or (payload.file_key and payload.file_key != record.file_key):
            raise NotFound('File not found')
        ensure_can_modify(user, record.owner_id)

        # Blob goes first: an unreferenced blob is harmless, a row without
        # its blob is not. A failure here keeps the row so the call can be repeated.
        try:
            await blob_store.delete(record.file_key)
        except BlobStoreError as e:
            logger.error({'msg': 'blob_delete_failed', 'file_key': record.file_key, 'error': str(e)})
            raise StorageUnavailable()
        await delete_file_record(db, record)

    DELETED_ITEMS.labels(kind=payload.kind).inc()
    logger.info({'msg': 'item_deleted', 'kind': payload.kind, 'id': payload.id, 'user_id': user.id})
    return {'ok': True}
