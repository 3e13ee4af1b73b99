"""
Integration tests for authentication and authorization.
"""

from datetime import datetime, timedelta, timezone

import jwt


class TestRegistration:
    """Test user registration flow."""

    def test_register_returns_token(self, client):
        response = client.post('/api/auth/register', json={
            'email': 'New.User@Test.com',
            'name': 'New User',
            'password': 'securepass123',
        })

        assert response.status_code == 201
        data = response.get_json()
        assert data['token']
        assert data['user']['email'] == 'new.user@test.com'
        assert data['user']['role'] == 'USER'
        assert 'passwordHash' not in data['user']

    def test_duplicate_email_conflict(self, client, regular_user):
        response = client.post('/api/auth/register', json={
            'email': 'jane@test.com',
            'name': 'Jane Again',
            'password': 'securepass123',
        })

        assert response.status_code == 409
        assert response.get_json()['status'] == 'error'

    def test_invalid_body(self, client):
        response = client.post('/api/auth/register', json={'email': 'not-an-email', 'name': '', 'password': '1'})

        assert response.status_code == 400
        data = response.get_json()
        assert data['message'] == 'Validation failed'
        fields = {tuple(d['loc']) for d in data['details']}
        assert ('email',) in fields
        assert ('password',) in fields


class TestLogin:
    """Test login and bearer token handling."""

    def test_login_success(self, client, regular_user):
        response = client.post('/api/auth/login', json={'email': 'jane@test.com', 'password': 'password123'})

        assert response.status_code == 200
        data = response.get_json()
        assert data['user']['name'] == 'Jane Smith'

        me = client.get('/api/auth/me', headers={'Authorization': f"Bearer {data['token']}"})
        assert me.status_code == 200
        assert me.get_json()['email'] == 'jane@test.com'

    def test_login_wrong_password(self, client, regular_user):
        response = client.post('/api/auth/login', json={'email': 'jane@test.com', 'password': 'wrong'})

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Invalid credentials'

    def test_missing_token(self, client):
        response = client.get('/api/auth/me')

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Unauthorized'

    def test_garbage_token(self, client):
        response = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-token'})

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Invalid token'

    def test_expired_token(self, app, client, regular_user):
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {'sub': str(regular_user.id), 'iat': now - timedelta(days=8), 'exp': now - timedelta(days=1)},
            app.config['JWT_SECRET'],
            algorithm='HS256'
        )

        response = client.get('/api/auth/me', headers={'Authorization': f'Bearer {token}'})

        assert response.status_code == 401
        assert response.get_json()['message'] == 'Token expired'


class TestProfile:

    def test_update_profile(self, client, auth_headers):
        response = client.put('/api/auth/me', headers=auth_headers, json={
            'name': 'Jane Doe',
            'company': 'Acme',
            'phoneCountryCode': '+250',
            'phoneNumber': '788000000',
        })

        assert response.status_code == 200
        data = response.get_json()
        assert data['name'] == 'Jane Doe'
        assert data['phoneCountryCode'] == '+250'

    def test_change_password(self, client, auth_headers):
        response = client.post('/api/auth/password', headers=auth_headers, json={
            'currentPassword': 'password123',
            'newPassword': 'newpassword456',
        })
        assert response.status_code == 200

        login = client.post('/api/auth/login', json={'email': 'jane@test.com', 'password': 'newpassword456'})
        assert login.status_code == 200

    def test_change_password_wrong_current(self, client, auth_headers):
        response = client.post('/api/auth/password', headers=auth_headers, json={
            'currentPassword': 'nope',
            'newPassword': 'newpassword456',
        })

        assert response.status_code == 400
