"""
Unit Tests for Authentication API Endpoints
"""
import pytest
from datetime import datetime, timedelta
from httpx import AsyncClient

from sopmanager.core.config import settings
from sopmanager.models import StaffSession, UserRole

from conftest import ADMIN_PIN, MANAGER_PIN, STAFF_PIN


class TestLogin:
    """Test PIN login endpoint"""

    @pytest.mark.asyncio
    async def test_login_success(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})

        assert response.status_code == 200
        data = response.json()
        assert data['token_type'] == 'bearer'
        assert data['access_token']
        assert data['session_id']
        assert data['pin_expired'] is False
        assert data['user']['email'] == staff_user.email
        assert data['user']['role'] == 'staff'
        assert 'pin_hash' not in data['user']
        assert 'sop:read' in data['permissions']
        assert 'sop:write' not in data['permissions']

    @pytest.mark.asyncio
    async def test_login_sets_session_cookie(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})

        assert response.status_code == 200
        assert settings.SESSION_COOKIE_NAME in response.cookies
        set_cookie = response.headers['set-cookie'].lower()
        assert 'httponly' in set_cookie

    @pytest.mark.asyncio
    async def test_login_email_is_case_insensitive(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email.upper(), 'pin': STAFF_PIN})

        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_login_wrong_pin(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': '0001'})

        assert response.status_code == 401
        body = response.json()
        assert body['success'] is False
        assert body['error']['code'] == 'INVALID_CREDENTIALS'

    @pytest.mark.asyncio
    async def test_login_unknown_email(self, client: AsyncClient, restaurant):
        response = await client.post('/api/v1/auth/login', json={'email': 'nobody@krongthai.com', 'pin': STAFF_PIN})

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'INVALID_CREDENTIALS'

    @pytest.mark.asyncio
    async def test_login_malformed_pin(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': '12ab'})

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_PIN_FORMAT'

    @pytest.mark.asyncio
    async def test_login_error_in_thai(self, client: AsyncClient, staff_user):
        response = await client.post(
            '/api/v1/auth/login',
            json={'email': staff_user.email, 'pin': '0001'},
            headers={'Accept-Language': 'th-TH,th;q=0.9'},
        )

        error = response.json()['error']
        assert error['message'] == error['messages']['th']
        assert error['message'] != error['messages']['en']

    @pytest.mark.asyncio
    async def test_login_missing_fields(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/login', json={'email': 'staff@krongthai.com'})

        assert response.status_code == 422
        body = response.json()
        assert body['error']['code'] == 'VALIDATION_ERROR'
        assert body['error']['details']['errors'][0]['field'] == 'pin'

    @pytest.mark.asyncio
    async def test_expired_pin_is_flagged(self, client: AsyncClient, make_user, restaurant):
        user = await make_user(restaurant, UserRole.STAFF, STAFF_PIN, pin_changed_at=None)

        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': STAFF_PIN})

        assert response.status_code == 200
        assert response.json()['pin_expired'] is True


class TestLockout:
    """Per-account lockout after repeated PIN failures"""

    @pytest.mark.asyncio
    async def test_account_locks_after_max_attempts(self, client: AsyncClient, staff_user):
        payload = {'email': staff_user.email, 'pin': '0001'}

        for _ in range(settings.PIN_MAX_ATTEMPTS):
            response = await client.post('/api/v1/auth/login', json=payload)
            assert response.status_code == 401

        response = await client.post('/api/v1/auth/login', json=payload)

        assert response.status_code == 423
        error = response.json()['error']
        assert error['code'] == 'ACCOUNT_LOCKED'
        assert 0 < error['details']['retry_after_seconds'] <= settings.PIN_LOCKOUT_DURATION_MINUTES * 60

    @pytest.mark.asyncio
    async def test_correct_pin_rejected_while_locked(self, client: AsyncClient, make_user, restaurant):
        user = await make_user(
            restaurant, pin=STAFF_PIN,
            pin_attempts=6, locked_until=datetime.utcnow() + timedelta(minutes=15),
        )

        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': STAFF_PIN})

        assert response.status_code == 423

    @pytest.mark.asyncio
    async def test_expired_lock_allows_login_and_resets_counter(self, client: AsyncClient, make_user, restaurant,
                                                                db_session):
        user = await make_user(
            restaurant, pin=STAFF_PIN,
            pin_attempts=6, locked_until=datetime.utcnow() - timedelta(minutes=1),
        )

        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': STAFF_PIN})

        assert response.status_code == 200
        await db_session.refresh(user)
        assert user.pin_attempts == 0
        assert user.locked_until is None


class TestInactiveAccount:

    @pytest.mark.asyncio
    async def test_inactive_with_correct_pin(self, client: AsyncClient, make_user, restaurant):
        user = await make_user(restaurant, pin=STAFF_PIN, is_active=False)

        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': STAFF_PIN})

        assert response.status_code == 403
        assert response.json()['error']['code'] == 'ACCOUNT_INACTIVE'

    @pytest.mark.asyncio
    async def test_inactive_with_wrong_pin_does_not_reveal_state(self, client: AsyncClient, make_user, restaurant):
        user = await make_user(restaurant, pin=STAFF_PIN, is_active=False)

        response = await client.post('/api/v1/auth/login', json={'email': user.email, 'pin': '0001'})

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'INVALID_CREDENTIALS'


class TestSession:
    """Test session endpoints"""

    @pytest.mark.asyncio
    async def test_me(self, client: AsyncClient, manager_user, manager_headers):
        response = await client.get('/api/v1/auth/me', headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['user']['id'] == manager_user.id
        assert 'sop:approve' in data['permissions']
        assert 'user:write' not in data['permissions']
        assert data['pin_expired'] is False

    @pytest.mark.asyncio
    async def test_me_with_cookie(self, client: AsyncClient, staff_user):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        assert response.status_code == 200

        response = await client.get('/api/v1/auth/me')

        assert response.status_code == 200
        assert response.json()['user']['id'] == staff_user.id
        client.cookies.clear()

    @pytest.mark.asyncio
    async def test_me_unauthenticated(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me')

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'AUTH_REQUIRED'

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/me', headers={'Authorization': 'Bearer not-a-token'})

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'INVALID_TOKEN'

    @pytest.mark.asyncio
    async def test_logout_revokes_session(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/logout', headers=staff_headers)
        assert response.status_code == 200

        response = await client.get('/api/v1/auth/me', headers=staff_headers)

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'INVALID_TOKEN'

    @pytest.mark.asyncio
    async def test_idle_session_expires(self, client: AsyncClient, staff_user, db_session):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        client.cookies.clear()
        data = response.json()
        headers = {'Authorization': f"Bearer {data['access_token']}"}

        session = await db_session.get(StaffSession, data['session_id'])
        session.last_activity_at = datetime.utcnow() - timedelta(minutes=settings.SESSION_IDLE_TIMEOUT_MINUTES + 1)
        await db_session.commit()

        response = await client.get('/api/v1/auth/me', headers=headers)

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'SESSION_EXPIRED'

    @pytest.mark.asyncio
    async def test_login_session_lasts_eight_hours(self, client: AsyncClient, staff_user, db_session):
        before = datetime.utcnow()
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        after = datetime.utcnow()

        session = await db_session.get(StaffSession, response.json()['session_id'])

        assert settings.SESSION_DURATION_HOURS == 8
        duration = timedelta(hours=settings.SESSION_DURATION_HOURS)
        assert before + duration <= session.expires_at <= after + duration

    @pytest.mark.asyncio
    async def test_session_past_expiry_is_rejected(self, client: AsyncClient, staff_user, db_session):
        """The session row expires on its own clock even while the token is still valid"""
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        client.cookies.clear()
        data = response.json()
        headers = {'Authorization': f"Bearer {data['access_token']}"}

        session = await db_session.get(StaffSession, data['session_id'])
        session.expires_at = datetime.utcnow() - timedelta(minutes=1)
        await db_session.commit()

        response = await client.get('/api/v1/auth/me', headers=headers)

        assert response.status_code == 401
        assert response.json()['error']['code'] == 'SESSION_EXPIRED'

    @pytest.mark.asyncio
    async def test_deactivated_user_loses_session(self, client: AsyncClient, staff_user, staff_headers, db_session):
        staff_user.is_active = False
        await db_session.commit()

        response = await client.get('/api/v1/auth/me', headers=staff_headers)

        assert response.status_code == 403


class TestRefresh:

    @pytest.mark.asyncio
    async def test_refresh_too_early(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/refresh', headers=staff_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'SESSION_REFRESH_DENIED'

    @pytest.mark.asyncio
    async def test_refresh_near_expiry(self, client: AsyncClient, staff_user, db_session):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        client.cookies.clear()
        data = response.json()

        session = await db_session.get(StaffSession, data['session_id'])
        session.expires_at = datetime.utcnow() + timedelta(hours=1)
        await db_session.commit()

        response = await client.post(
            '/api/v1/auth/refresh', headers={'Authorization': f"Bearer {data['access_token']}"}
        )

        assert response.status_code == 200
        refreshed = response.json()
        assert refreshed['session_id'] == data['session_id']
        assert refreshed['refresh_count'] == 1
        assert refreshed['access_token']
        client.cookies.clear()

    @pytest.mark.asyncio
    async def test_refresh_limit(self, client: AsyncClient, staff_user, db_session):
        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': STAFF_PIN})
        client.cookies.clear()
        data = response.json()

        session = await db_session.get(StaffSession, data['session_id'])
        session.expires_at = datetime.utcnow() + timedelta(hours=1)
        session.refresh_count = settings.SESSION_MAX_REFRESH_COUNT
        await db_session.commit()

        response = await client.post(
            '/api/v1/auth/refresh', headers={'Authorization': f"Bearer {data['access_token']}"}
        )

        assert response.status_code == 400


class TestChangePin:

    @pytest.mark.asyncio
    async def test_change_pin(self, client: AsyncClient, staff_user, login):
        other_headers = await login(staff_user, STAFF_PIN)
        headers = await login(staff_user, STAFF_PIN)

        response = await client.post('/api/v1/auth/change-pin', json={
            'current_pin': STAFF_PIN, 'new_pin': '8163', 'confirm_pin': '8163',
        }, headers=headers)

        assert response.status_code == 200

        # Current session survives, the other one is signed out
        assert (await client.get('/api/v1/auth/me', headers=headers)).status_code == 200
        assert (await client.get('/api/v1/auth/me', headers=other_headers)).status_code == 401

        response = await client.post('/api/v1/auth/login', json={'email': staff_user.email, 'pin': '8163'})
        assert response.status_code == 200
        client.cookies.clear()

    @pytest.mark.asyncio
    async def test_change_pin_mismatch(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/change-pin', json={
            'current_pin': STAFF_PIN, 'new_pin': '8163', 'confirm_pin': '8164',
        }, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'PIN_MISMATCH'

    @pytest.mark.asyncio
    async def test_change_pin_weak(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/change-pin', json={
            'current_pin': STAFF_PIN, 'new_pin': '1234', 'confirm_pin': '1234',
        }, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'WEAK_PIN'

    @pytest.mark.asyncio
    async def test_change_pin_same_as_current(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/change-pin', json={
            'current_pin': STAFF_PIN, 'new_pin': STAFF_PIN, 'confirm_pin': STAFF_PIN,
        }, headers=staff_headers)

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'PIN_REUSED'

    @pytest.mark.asyncio
    async def test_change_pin_wrong_current(self, client: AsyncClient, staff_headers):
        response = await client.post('/api/v1/auth/change-pin', json={
            'current_pin': '0001', 'new_pin': '8163', 'confirm_pin': '8163',
        }, headers=staff_headers)

        assert response.status_code == 401


class TestPinStrength:

    @pytest.mark.asyncio
    async def test_strong_pin(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/pin-strength', json={'pin': ADMIN_PIN})

        assert response.status_code == 200
        data = response.json()
        assert data['valid'] is True
        assert data['strength'] == 'strong'
        assert data['score'] == 100

    @pytest.mark.asyncio
    async def test_weak_pin(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/pin-strength', json={'pin': '1234'})

        data = response.json()
        assert data['valid'] is False
        assert data['strength'] == 'weak'
        assert data['errors']

    @pytest.mark.asyncio
    async def test_manager_pin_is_acceptable(self, client: AsyncClient):
        response = await client.post('/api/v1/auth/pin-strength', json={'pin': MANAGER_PIN})

        assert response.json()['valid'] is True
