from app.utils.tokens import create_access_token, decode_access_token, load_staff_from_header


def test_login_returns_token(client, admin_user):
    resp = client.post('/api/auth/login', json={'email': 'Admin@Office.example', 'password': 'password'})
    assert resp.status_code == 200
    data = resp.get_json()
    assert data['success'] is True
    assert data['user']['role'] == 'admin'

    payload = decode_access_token(data['token'])
    assert payload['sub'] == str(admin_user.id)


def test_login_wrong_password(client, admin_user):
    resp = client.post('/api/auth/login', json={'email': 'admin@office.example', 'password': 'nope'})
    assert resp.status_code == 401
    assert resp.get_json()['success'] is False


def test_login_missing_fields(client):
    resp = client.post('/api/auth/login', json={'email': 'admin@office.example'})
    assert resp.status_code == 400


def test_login_inactive_staff(client, make_staff):
    make_staff(email='gone@office.example', status='inactive')
    resp = client.post('/api/auth/login', json={'email': 'gone@office.example', 'password': 'password'})
    assert resp.status_code == 403


def test_me_with_bearer_token(client, staff_headers, regular_user):
    resp = client.get('/api/auth/me', headers=staff_headers)
    assert resp.status_code == 200
    assert resp.get_json()['user']['email'] == regular_user.email


def test_me_without_token(client):
    resp = client.get('/api/auth/me')
    assert resp.status_code == 401
    assert resp.get_json()['message'] == 'Access token is required'


def test_me_with_token_signed_by_other_key(client, app, regular_user):
    original = app.config['SECRET_KEY']
    app.config['SECRET_KEY'] = 'another-secret-key-entirely'
    token = create_access_token(regular_user)
    app.config['SECRET_KEY'] = original

    resp = client.get('/api/auth/me', headers={'Authorization': f"Bearer {token}"})
    assert resp.status_code == 401


def test_expired_access_token_is_ignored(app, regular_user):
    app.config['ACCESS_TOKEN_EXPIRE_MINUTES'] = -5
    token = create_access_token(regular_user)
    assert decode_access_token(token) is None
    assert load_staff_from_header(f"Bearer {token}") is None


def test_inactive_staff_token_is_ignored(app, regular_user):
    from app import db
    token = create_access_token(regular_user)
    regular_user.status = 'inactive'
    db.session.commit()
    assert load_staff_from_header(f"Bearer {token}") is None


def test_malformed_headers(app):
    assert load_staff_from_header(None) is None
    assert load_staff_from_header('Basic abc') is None
    assert load_staff_from_header('Bearer not-a-jwt') is None
