import hashlib
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import select, func

from sharedesk import crud
from sharedesk.auth import (
    ADMIN_USERNAME,
    ADMIN_PASSWORD,
    SESSION_COOKIE_NAME,
    hash_password,
    verify_password,
    generate_session_token,
    hash_token,
)
from sharedesk.models.users import User
from sharedesk.models.session_tokens import SessionToken
from conftest import login


def test_hash_password_is_flat_sha256_hex():
    digest = hash_password('pw1')
    assert digest == hashlib.sha256(b'pw1').hexdigest()
    assert len(digest) == 64
    assert hash_password('pw1') == digest
    assert hash_password('pw2') != digest


def test_verify_password():
    digest = hash_password('correct horse')
    assert verify_password('correct horse', digest)
    assert not verify_password('wrong horse', digest)


def test_session_tokens_are_random_and_hashed():
    a, b = generate_session_token(), generate_session_token()
    assert a != b
    assert hash_token(a) == hashlib.sha256(a.encode()).hexdigest()


@pytest.mark.asyncio
async def test_admin_bootstrap_is_idempotent(db):
    first = await crud.ensure_admin_exists(db)
    second = await crud.ensure_admin_exists(db)
    assert first.id == second.id
    assert first.is_admin
    count = await db.scalar(select(func.count()).select_from(User).where(User.username == ADMIN_USERNAME))
    assert count == 1


@pytest.mark.asyncio
async def test_admin_bootstrap_tolerates_lost_race(db, monkeypatch):
    await crud.ensure_admin_exists(db)

    # Simulate a concurrent request that checked before the row was committed
    real_lookup = crud.get_user_by_username
    calls = []

    async def stale_lookup(session, username):
        calls.append(username)
        if len(calls) == 1:
            return None
        return await real_lookup(session, username)

    monkeypatch.setattr(crud, 'get_user_by_username', stale_lookup)
    admin = await crud.ensure_admin_exists(db)
    assert admin is not None and admin.username == ADMIN_USERNAME
    assert len(calls) == 2

    count = await db.scalar(select(func.count()).select_from(User).where(User.username == ADMIN_USERNAME))
    assert count == 1


@pytest.mark.asyncio
async def test_first_request_creates_admin(client, db):
    res = await client.get('/')
    assert res.status_code == 200
    admin = await crud.get_user_by_username(db, ADMIN_USERNAME)
    assert admin is not None
    assert admin.is_admin
    assert verify_password(ADMIN_PASSWORD, admin.password_hash)


@pytest.mark.asyncio
async def test_unmatched_request_still_creates_admin(client, db):
    res = await client.get('/no-such-page')
    assert res.status_code == 404
    admin = await crud.get_user_by_username(db, ADMIN_USERNAME)
    assert admin is not None
    assert admin.is_admin


@pytest.mark.asyncio
async def test_login_sets_cookie_and_resolves(client, db):
    res = await login(client, ADMIN_USERNAME, ADMIN_PASSWORD)
    assert res.status_code == 200
    body = res.json()
    assert body['ok'] is True
    assert body['user']['username'] == ADMIN_USERNAME
    assert body['user']['is_admin'] is True

    set_cookie = res.headers['set-cookie']
    assert f'{SESSION_COOKIE_NAME}=' in set_cookie
    assert 'httponly' in set_cookie.lower()

    token = client.cookies.get(SESSION_COOKIE_NAME)
    user = await crud.resolve_session(db, token)
    assert user is not None and user.username == ADMIN_USERNAME

    # only the hash is persisted
    rows = (await db.execute(select(SessionToken))).scalars().all()
    assert [r.token_hash for r in rows] == [hash_token(token)]


@pytest.mark.asyncio
async def test_login_failures_do_not_reveal_which_part_was_wrong(admin_client, client):
    await admin_client.post('/add-user', json={'username': 'alice', 'password': 'pw1'})

    wrong_password = await login(client, 'alice', 'wrong')
    unknown_user = await login(client, 'mallory', 'pw1')
    assert wrong_password.status_code == 401
    assert unknown_user.status_code == 401
    assert wrong_password.json() == unknown_user.json() == {'detail': 'Invalid credentials'}
    assert SESSION_COOKIE_NAME not in client.cookies


@pytest.mark.asyncio
async def test_logout_invalidates_session_and_is_idempotent(admin_client, db):
    token = admin_client.cookies.get(SESSION_COOKIE_NAME)
    assert await crud.resolve_session(db, token) is not None

    res = await admin_client.post('/logout')
    assert res.status_code == 200
    assert await crud.resolve_session(db, token) is None

    # the stale token is rejected on gated routes
    res = await admin_client.get('/admin', headers={'Cookie': f'{SESSION_COOKIE_NAME}={token}'})
    assert res.status_code == 401

    res = await admin_client.post('/logout')
    assert res.status_code == 200
    assert await crud.revoke_session(db, token) is False


@pytest.mark.asyncio
async def test_logout_without_session(client):
    res = await client.post('/logout')
    assert res.status_code == 200
    assert res.json()['ok'] is True


@pytest.mark.asyncio
async def test_expired_session_does_not_resolve(db):
    user = await crud.create_user(db, 'carol', 'pw')
    token = generate_session_token()
    db.add(SessionToken(
        user_id=user.id,
        token_hash=hash_token(token),
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    ))
    await db.commit()
    assert await crud.resolve_session(db, token) is None


@pytest.mark.asyncio
async def test_resolve_unknown_or_missing_token(db):
    assert await crud.resolve_session(db, None) is None
    assert await crud.resolve_session(db, '') is None
    assert await crud.resolve_session(db, 'not-a-token') is None


@pytest.mark.asyncio
async def test_users_added_by_admin_can_log_in(db):
    for username, password in [('dave', 'a'), ('erin', 'p@ss w0rd'), ('frank', 'ünïcode')]:
        await crud.create_user(db, username, password)
        result = await crud.authenticate_user(db, username, password)
        assert result is not None
        user, token = result
        resolved = await crud.resolve_session(db, token)
        assert resolved.id == user.id
