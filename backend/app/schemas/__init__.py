from app.schemas.account import (
    Access,
    AccountCreate,
    AccountUpdate,
    AutoCompleteRequest,
    Outline,
    RedrawRequest,
)
from app.schemas.auth import (
    LoginRequest,
    PasswordChange,
    RegisterRequest,
    TokenResponse,
    UserUpdate,
)
from app.schemas.preferences import ViewPreferencesResponse

__all__ = [
    "Access", "Outline", "AccountCreate", "AccountUpdate", "RedrawRequest", "AutoCompleteRequest",
    "ViewPreferencesResponse",
    "LoginRequest", "RegisterRequest", "TokenResponse", "UserUpdate", "PasswordChange",
]
