from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional, Dict, Any

from lastbite.core.validation import validate_phone, validate_password, require_min_length
from lastbite.modules.profiles.schemas import Profile, Role

MIN_OTP_LENGTH = 6


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password(value)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    role: Role

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        return validate_password(value)


class OtpRequest(BaseModel):
    phone: str

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return validate_phone(value)


class OtpVerifyRequest(BaseModel):
    phone: str
    token: str

    @field_validator("phone")
    @classmethod
    def check_phone(cls, value: str) -> str:
        return validate_phone(value)

    @field_validator("token")
    @classmethod
    def check_token(cls, value: str) -> str:
        return require_min_length(
            value, MIN_OTP_LENGTH, f"Verification code must be at least {MIN_OTP_LENGTH} characters"
        )


class AuthSession(BaseModel):
    """Tokens issued by Supabase Auth plus the user they belong to"""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user: Dict[str, Any]

    @property
    def user_id(self) -> str:
        return self.user["id"]


class RegisterResponse(BaseModel):
    user_id: str
    email: str
    message: str


class OtpSentResponse(BaseModel):
    phone: str
    message: str = "Verification code sent"


class LoginResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    profile: Optional[Profile] = None
    redirect_to: str
