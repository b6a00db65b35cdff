import os
from jose import jwt, JWTError
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
import secrets
import hashlib

# Prefer JWT_SECRET but support JWT_SECRET_KEY for compatibility
SECRET = os.getenv('JWT_SECRET') or os.getenv('JWT_SECRET_KEY', 'devsecret')
ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')

SESSION_COOKIE_NAME = os.getenv('SESSION_COOKIE_NAME', 'session')
SESSION_TTL_HOURS = int(os.getenv('SESSION_TTL_HOURS', str(24 * 7)))
COOKIE_SECURE = os.getenv('COOKIE_SECURE', '0') == '1'
SHARE_LINK_TTL_MINUTES = int(os.getenv('SHARE_LINK_TTL_MINUTES', '60'))

ADMIN_USERNAME = os.getenv('ADMIN_USERNAME', 'admin')
ADMIN_PASSWORD = os.getenv('ADMIN_PASSWORD', 'admin')

# hex_sha256 is a flat unsalted digest, kept as the default so existing rows
# keep verifying. Setting PASSWORD_HASH_SCHEME=bcrypt re-hashes on next login.
PASSWORD_HASH_SCHEME = os.getenv('PASSWORD_HASH_SCHEME', 'hex_sha256')
_schemes = [PASSWORD_HASH_SCHEME] + [s for s in ('hex_sha256', 'bcrypt') if s != PASSWORD_HASH_SCHEME]

pwd_ctx = CryptContext(
    schemes=_schemes,
    default=PASSWORD_HASH_SCHEME,
    deprecated=['hex_sha256'] if PASSWORD_HASH_SCHEME != 'hex_sha256' else [],
)


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_ctx.verify(password, password_hash)


def generate_session_token() -> str:
    # 384-bit random token, URL-safe
    return secrets.token_urlsafe(48)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def session_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(hours=SESSION_TTL_HOURS)


def create_share_token(file_key: str, expires_delta: timedelta = None) -> str:
    """Signed token that lets an anonymous client download one file."""
    if expires_delta is None:
        expires_delta = timedelta(minutes=SHARE_LINK_TTL_MINUTES)
    to_encode = {
        'sub': file_key,
        'scope': 'file',
        'exp': datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, SECRET, algorithm=ALGORITHM)


def share_token_allows(token: str, file_key: str) -> bool:
    try:
        payload = jwt.decode(token, SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return False
    return payload.get('scope') == 'file' and payload.get('sub') == file_key
