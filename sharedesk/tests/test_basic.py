import pytest


@pytest.mark.asyncio
async def test_healthz(client):
    res = await client.get('/healthz')
    assert res.status_code == 200
    assert res.json() == {'status': 'ok'}


@pytest.mark.asyncio
async def test_unknown_path_is_404(client):
    res = await client.get('/nope')
    assert res.status_code == 404
    assert res.json() == {'detail': 'Not found'}


@pytest.mark.asyncio
async def test_wrong_method_is_404(client):
    res = await client.get('/login')
    assert res.status_code == 404
    assert res.json() == {'detail': 'Not found'}
    res = await client.delete('/upload')
    assert res.status_code == 404


@pytest.mark.asyncio
async def test_home_shows_login_form_when_anonymous(client):
    res = await client.get('/')
    assert res.status_code == 200
    assert res.headers['content-type'].startswith('text/html')
    assert 'id="login-form"' in res.text
    assert 'id="text-form"' not in res.text


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    res = await client.post('/login', json={'username': 'x'})
    assert res.status_code == 400
    body = res.json()
    assert body['detail'] == 'Invalid request data'
    assert any(e['field'].endswith('password') for e in body['errors'])
