"""
Unit Tests for Security Module
Tests for: PIN hashing, session tokens
"""
import pytest
from datetime import datetime, timedelta
from jose import jwt

from sopmanager.core.security import (
    hash_pin,
    verify_pin,
    create_access_token,
    create_session_token,
    decode_token,
)
from sopmanager.core.config import settings
from sopmanager.core.exceptions import InvalidTokenError, SessionExpiredError


class TestPinHashing:
    """Test PIN hashing functions"""

    def test_hash_pin_returns_different_value(self):
        hashed = hash_pin('7294')

        assert hashed != '7294'
        assert hashed.startswith('$2')

    def test_hash_pin_different_each_time(self):
        """Bcrypt generates different salts"""
        assert hash_pin('7294') != hash_pin('7294')

    def test_verify_pin_correct(self):
        hashed = hash_pin('7294')

        assert verify_pin('7294', hashed) is True

    def test_verify_pin_incorrect(self):
        hashed = hash_pin('7294')

        assert verify_pin('7295', hashed) is False

    def test_verify_malformed_pin_is_rejected(self):
        hashed = hash_pin('7294')

        assert verify_pin('72a4', hashed) is False
        assert verify_pin('72945', hashed) is False
        assert verify_pin('', hashed) is False

    def test_verify_without_hash(self):
        assert verify_pin('7294', None) is False

    def test_verify_corrupt_hash(self):
        assert verify_pin('7294', 'not-a-bcrypt-hash') is False


class TestSessionTokens:
    """Test JWT session tokens"""

    def test_create_access_token(self):
        token = create_access_token({'sub': 'user-1'})

        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        assert payload['sub'] == 'user-1'
        assert payload['type'] == 'access'
        assert 'exp' in payload

    def test_default_expiry_is_session_duration(self):
        token = create_access_token({'sub': 'user-1'})

        payload = decode_token(token)
        lifetime = payload['exp'] - payload['iat']
        assert lifetime == pytest.approx(settings.SESSION_DURATION_HOURS * 3600, abs=5)

    def test_session_token_claims(self):
        expires_at = datetime.utcnow() + timedelta(hours=8)
        token = create_session_token('user-1', 'session-1', 'restaurant-1', 'staff', expires_at)

        payload = decode_token(token)
        assert payload['sub'] == 'user-1'
        assert payload['sid'] == 'session-1'
        assert payload['restaurant_id'] == 'restaurant-1'
        assert payload['role'] == 'staff'

    def test_decode_expired_token(self):
        token = create_access_token({'sub': 'user-1'}, expires_delta=timedelta(seconds=-10))

        with pytest.raises(SessionExpiredError):
            decode_token(token)

    def test_decode_invalid_token(self):
        with pytest.raises(InvalidTokenError):
            decode_token('invalid.token.here')

    def test_decode_token_signed_with_other_key(self):
        token = jwt.encode({'sub': 'user-1'}, 'some-other-key', algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(InvalidTokenError):
            decode_token(token)
