"""
Blob storage for uploaded files.

Blobs are addressed only by their file key; content type, name and owner live
in the ``files`` table. Two backends are provided: a local directory written
with aiofiles and an S3 bucket accessed through aioboto3.
"""

import os
import re
import uuid
import logging
import aiofiles
import aiofiles.os
import aioboto3
from botocore.config import Config
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

BLOB_BACKEND = os.getenv('BLOB_BACKEND', 'local')
BLOB_DIR = os.getenv('BLOB_DIR', os.path.join('data', 'blobs'))

# Support both AWS_S3_BUCKET (preferred) and legacy AWS_S3_BUCKET_NAME
S3_BUCKET = os.getenv('AWS_S3_BUCKET') or os.getenv('AWS_S3_BUCKET_NAME')
S3_PREFIX = os.getenv('AWS_S3_PREFIX', 'files/')

_FILE_KEY_RE = re.compile(r'^[0-9a-f]{32}$')


class BlobNotFound(Exception):
    pass


class BlobStoreError(Exception):
    pass


def generate_file_key() -> str:
    return uuid.uuid4().hex


def is_valid_file_key(key: str) -> bool:
    return bool(key) and bool(_FILE_KEY_RE.match(key))


class BlobStore:
    """Interface every blob backend implements.

    ``delete`` must succeed when the key is already gone so that a delete
    interrupted between blob and row can simply be repeated.
    """

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError

    async def get(self, key: str) -> bytes:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class LocalBlobStore(BlobStore):
    """Stores each blob as a file named after its key under ``root``."""

    def __init__(self, root: str = BLOB_DIR):
        self.root = root

    def _path(self, key: str) -> str:
        if not is_valid_file_key(key):
            raise BlobNotFound(key)
        return os.path.join(self.root, key)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        if not is_valid_file_key(key):
            raise BlobStoreError(f'invalid file key: {key!r}')
        os.makedirs(self.root, exist_ok=True)
        path = self._path(key)
        try:
            async with aiofiles.open(path, 'wb') as f:
                await f.write(data)
        except OSError as e:
            # Clean up partial file if it was created
            if os.path.exists(path):
                os.remove(path)
            raise BlobStoreError(f'failed to write blob {key}: {e}') from e

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            async with aiofiles.open(path, 'rb') as f:
                return await f.read()
        except FileNotFoundError:
            raise BlobNotFound(key)
        except OSError as e:
            raise BlobStoreError(f'failed to read blob {key}: {e}') from e

    async def delete(self, key: str) -> None:
        try:
            path = self._path(key)
        except BlobNotFound:
            return
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise BlobStoreError(f'failed to delete blob {key}: {e}') from e


class S3BlobStore(BlobStore):
    """Stores blobs as objects under ``prefix`` in an S3 bucket."""

    def __init__(self, bucket: str = S3_BUCKET, prefix: str = S3_PREFIX, region: str = None):
        if not bucket:
            raise ValueError('AWS_S3_BUCKET must be set for the s3 blob backend')
        self.bucket = bucket
        self.prefix = prefix
        # Prefer AWS_S3_REGION if provided; fall back to AWS_REGION, then us-east-1
        self.region = region or os.getenv('AWS_S3_REGION') or os.getenv('AWS_REGION', 'us-east-1')
        self.session = aioboto3.Session()

    def _object_key(self, key: str) -> str:
        return f'{self.prefix}{key}'

    def _client(self):
        return self.session.client('s3', region_name=self.region,
                                   aws_secret_access_key=os.getenv('AWS_SECRET_ACCESS_KEY'),
                                   aws_access_key_id=os.getenv('AWS_ACCESS_KEY_ID'),
                                   config=Config(signature_version='s3v4'))

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            async with self._client() as client:
                await client.put_object(Bucket=self.bucket, Key=self._object_key(key),
                                        Body=data, ContentType=content_type)
        except ClientError as e:
            raise BlobStoreError(f'failed to upload blob {key}: {e}') from e

    async def get(self, key: str) -> bytes:
        try:
            async with self._client() as client:
                obj = await client.get_object(Bucket=self.bucket, Key=self._object_key(key))
                async with obj['Body'] as stream:
                    return await stream.read()
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('NoSuchKey', '404'):
                raise BlobNotFound(key)
            raise BlobStoreError(f'failed to fetch blob {key}: {e}') from e

    async def delete(self, key: str) -> None:
        # S3 reports success for keys that do not exist
        try:
            async with self._client() as client:
                await client.delete_object(Bucket=self.bucket, Key=self._object_key(key))
        except ClientError as e:
            raise BlobStoreError(f'failed to delete blob {key}: {e}') from e


def build_blob_store(backend: str = BLOB_BACKEND) -> BlobStore:
    if backend == 's3':
        logger.info({'msg': 'blob_store', 'backend': 's3', 'bucket': S3_BUCKET})
        return S3BlobStore()
    if backend == 'local':
        logger.info({'msg': 'blob_store', 'backend': 'local', 'root': BLOB_DIR})
        return LocalBlobStore()
    raise ValueError(f'unknown BLOB_BACKEND: {backend!r}')
