# Pydantic schemas
from sopmanager.schemas.auth import (
    LoginRequest,
    LoginResponse,
    UserResponse,
    SessionResponse,
    MeResponse,
    ChangePinRequest,
    PinStrengthRequest,
    PinStrengthResponse,
    MessageResponse,
)
