# Overview: Pytest coverage for registration, login and session handling.

import pytest

from gebeyanet.errors import AuthenticationError, ConflictError
from gebeyanet.services import auth_service, session_service
from gebeyanet.services.auth_service import PasswordValidationError
from conftest import PASSWORD, auth_headers


class TestAuthService:
    def test_password_strength(self):
        for weak in ("short1!", "alllowercase1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial123"):
            with pytest.raises(PasswordValidationError):
                auth_service.validate_password_strength(weak)
        auth_service.validate_password_strength(PASSWORD)

    def test_hash_round_trip(self, app):
        hashed = auth_service.hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert auth_service.verify_password(PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong123!", hashed)
        assert not auth_service.verify_password(PASSWORD, "not-a-hash")

    def test_duplicate_username_and_email(self, owner):
        with pytest.raises(ConflictError) as exc:
            auth_service.create_user("shop_a", "new@example.com", PASSWORD)
        assert exc.value.field == "username"
        with pytest.raises(ConflictError) as exc:
            auth_service.create_user("new_user", "SHOP_A@example.com", PASSWORD)
        assert exc.value.field == "email"

    def test_authenticate_by_username_or_email(self, owner):
        assert auth_service.authenticate("shop_a", PASSWORD).id == owner.id
        assert auth_service.authenticate("shop_a@example.com", PASSWORD).id == owner.id
        assert owner.last_login_at is not None

    def test_authenticate_failures(self, owner, db_session):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("shop_a", "Wrong123!")
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("nobody", PASSWORD)

        owner.is_active = False
        db_session.commit()
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("shop_a", PASSWORD)


class TestSessions:
    def test_token_is_stored_hashed(self, owner):
        session, token = session_service.create_session(owner.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_validate_and_revoke(self, owner):
        _, token = session_service.create_session(owner.id)
        context = session_service.validate_session(token)
        assert context.owner_id == owner.id

        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None
        assert session_service.revoke_session(token) is False

    def test_expired_session(self, app, owner):
        app.config["SESSION_TTL_HOURS"] = 0
        try:
            _, token = session_service.create_session(owner.id)
        finally:
            app.config["SESSION_TTL_HOURS"] = 24
        assert session_service.validate_session(token) is None

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("garbage") is None
        assert session_service.validate_session("") is None


class TestAuthRoutes:
    def test_register_then_me(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'username': 'kiosk',
            'email': 'kiosk@example.com',
            'password': PASSWORD,
            'business_name': 'Kiosk',
        })
        assert response.status_code == 201
        token = response.json['token']
        assert response.json['user']['business_name'] == 'Kiosk'

        me = client.get('/api/auth/me', headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json['user']['username'] == 'kiosk'

    def test_register_weak_password(self, client, db_session):
        response = client.post('/api/auth/register', json={
            'username': 'kiosk', 'email': 'kiosk@example.com', 'password': 'weak',
        })
        assert response.status_code == 400
        assert response.json['code'] == 'VALIDATION_ERROR'

    def test_register_duplicate(self, client, owner):
        response = client.post('/api/auth/register', json={
            'username': 'shop_a', 'email': 'x@example.com', 'password': PASSWORD,
        })
        assert response.status_code == 409
        assert response.json['details']['field'] == 'username'

    def test_login(self, client, owner):
        response = client.post('/api/auth/login', json={'username': 'shop_a', 'password': PASSWORD})
        assert response.status_code == 200
        assert response.json['token']
        assert response.json['expires_at'].endswith('Z')

    def test_login_bad_credentials(self, client, owner):
        response = client.post('/api/auth/login', json={'username': 'shop_a', 'password': 'Wrong123!'})
        assert response.status_code == 401
        assert response.json['code'] == 'AUTHENTICATION_FAILED'

    def test_login_missing_fields(self, client, db_session):
        response = client.post('/api/auth/login', json={'username': 'shop_a'})
        assert response.status_code == 400

    def test_protected_route_requires_token(self, client, db_session):
        response = client.get('/api/auth/me')
        assert response.status_code == 401
        assert response.json['code'] == 'AUTHENTICATION_REQUIRED'

        response = client.get('/api/auth/me', headers=auth_headers('bogus'))
        assert response.status_code == 401
        assert response.json['code'] == 'TOKEN_INVALID'

    def test_logout_revokes_token(self, client, headers):
        assert client.post('/api/auth/logout', headers=headers).status_code == 200
        assert client.get('/api/auth/me', headers=headers).status_code == 401
