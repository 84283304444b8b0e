from datetime import datetime, timedelta
from typing import Optional, Dict, Any
from jose import JWTError, ExpiredSignatureError, jwt
import bcrypt

from sopmanager.core.config import settings
from sopmanager.core.exceptions import InvalidTokenError, SessionExpiredError
from sopmanager.core.pin_policy import is_valid_pin_format

# Compared against when the submitted PIN is malformed, so the response time
# does not reveal the format check
_DUMMY_PIN_HASH = bcrypt.hashpw(b"0000", bcrypt.gensalt(rounds=4)).decode("utf-8")


def hash_pin(pin: str) -> str:
    """Hash a PIN with configurable rounds (PIN_HASH_ROUNDS)"""
    hashed = bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt(rounds=settings.PIN_HASH_ROUNDS))
    return hashed.decode("utf-8")


def verify_pin(pin: str, pin_hash: Optional[str]) -> bool:
    """Verify a PIN against its bcrypt hash"""
    if not is_valid_pin_format(pin) or not pin_hash:
        bcrypt.checkpw(b"invalid", _DUMMY_PIN_HASH.encode("utf-8"))
        return False
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), pin_hash.encode("utf-8"))
    except ValueError:
        # Corrupt hash in the database
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT session token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(hours=settings.SESSION_DURATION_HOURS)

    to_encode.update({"exp": expire, "iat": datetime.utcnow(), "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_session_token(user_id: str, session_id: str, restaurant_id: str, role: str,
                         expires_at: datetime) -> str:
    """Token bound to a server-side StaffSession row"""
    return create_access_token(
        {
            "sub": str(user_id),
            "sid": str(session_id),
            "restaurant_id": str(restaurant_id),
            "role": role,
        },
        expires_delta=expires_at - datetime.utcnow(),
    )


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise SessionExpiredError()
    except JWTError:
        raise InvalidTokenError("Could not validate credentials")
