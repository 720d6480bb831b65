"""Pydantic models for auth domain."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserRole(str, Enum):
    USER = "USER"
    DRIVER = "DRIVER"
    OWNER_VEHICLE = "OWNER_VEHICLE"
    ADMIN = "ADMIN"


class UserStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    BANNED = "BANNED"


class UserRecord(BaseModel):
    """
    Credential record as stored by the user persistence layer.

    Holds the password hash - never serialize this to a client. Use to_public().
    """

    id: int
    name: str
    last_name: str | None = None
    email: EmailStr
    phone: str | None = None
    password_hash: str = Field(..., repr=False)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.PENDING
    email_verified: bool = False
    created_at: datetime
    updated_at: datetime | None = None
    last_login_at: datetime | None = None
    last_logout_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)

    @property
    def is_active(self) -> bool:
        return self.status == UserStatus.ACTIVE

    def to_public(self) -> "User":
        return User(
            id=self.id,
            name=self.name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            role=self.role,
            status=self.status,
            email_verified=self.email_verified,
            created_at=self.created_at,
        )

    def to_session(self) -> "SessionUser":
        return SessionUser(id=self.id, email=self.email, role=self.role, name=self.name)


class User(BaseModel):
    """User as returned to clients."""

    id: int
    name: str
    last_name: str | None = Field(default=None, serialization_alias="lastName")
    email: EmailStr
    phone: str | None = None
    role: UserRole
    status: UserStatus
    email_verified: bool = Field(serialization_alias="emailVerified")
    created_at: datetime = Field(serialization_alias="createdAt")

    def to_session(self) -> "SessionUser":
        return SessionUser(id=self.id, email=self.email, role=self.role, name=self.name)


class SessionUser(BaseModel):
    """
    Non-sensitive identity fields.

    Used both as access token claims input and as the shadow cookie payload.
    """

    id: int
    email: EmailStr
    role: UserRole
    name: str


class NewUser(BaseModel):
    """Fields needed to create an account. Password is already hashed."""

    name: str
    last_name: str | None = None
    email: EmailStr
    phone: str | None = None
    password_hash: str = Field(..., repr=False)
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.PENDING
    email_verified: bool = False


# =============================================================================
# REQUEST BODIES
# =============================================================================


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_RequestModel):
    name: str = Field(..., min_length=1)
    last_name: str | None = Field(default=None, alias="lastName")
    email: EmailStr
    password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1, alias="confirmPassword")
    phone: str | None = None


class LoginRequest(_RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class PasswordLoginRequest(LoginRequest):
    remember_me: bool = Field(default=False, alias="rememberMe")


class VerifyOtpRequest(_RequestModel):
    session_id: str = Field(..., min_length=1, alias="sessionId")
    otp: str = Field(..., min_length=6, max_length=6)


class VerifyEmailRequest(_RequestModel):
    token: str = Field(..., min_length=1)


class EmailRequest(_RequestModel):
    """Body of forgot-password and resend-verification."""

    email: EmailStr


class ResetPasswordRequest(_RequestModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, alias="newPassword")
    confirm_password: str = Field(..., min_length=1, alias="confirmPassword")


class ChangePasswordRequest(_RequestModel):
    current_password: str = Field(..., min_length=1, alias="currentPassword")
    new_password: str = Field(..., min_length=1, alias="newPassword")
    confirm_password: str = Field(..., min_length=1, alias="confirmPassword")
