"""
User Models - Identity, credentials and token structures.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

DEFAULT_ROLE = 1  # 1 = regular user, 2 = admin


class Identity(BaseModel):
    """Minimal descriptor of the signed-in user."""
    username: str
    role: int = DEFAULT_ROLE
    user_id: Optional[int] = None
    phone_number: Optional[str] = None

    @classmethod
    def placeholder(cls) -> "Identity":
        """Identity known only from the presence of a token."""
        return cls(username="user", role=DEFAULT_ROLE)


class UserCreate(BaseModel):
    """Registration payload for POST /register."""
    username: str
    password: str
    phone_number: Optional[str] = None
    role: int = DEFAULT_ROLE


class RegisterResponse(BaseModel):
    """Response of POST /register."""
    message: str = ""
    user_id: Optional[int] = Field(default=None, alias="userId")

    class Config:
        populate_by_name = True


class Token(BaseModel):
    """Response of POST /token."""
    access_token: str
    token_type: str = "bearer"


class TokenData(BaseModel):
    """Claims decoded from a bearer token."""
    expires_at: Optional[datetime] = None  # None = no client-side expiry
    subject: Optional[str] = None
    username: Optional[str] = None
    role: Optional[int] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


class Profile(BaseModel):
    """Response of GET /profile."""
    user_id: int = Field(alias="userId")
    username: str
    role: int = DEFAULT_ROLE
    phone_number: Optional[str] = None
    max_file_size: Optional[int] = None

    class Config:
        populate_by_name = True

    def to_identity(self) -> Identity:
        return Identity(
            username=self.username,
            role=self.role,
            user_id=self.user_id,
            phone_number=self.phone_number,
        )


class RegistrationResult(BaseModel):
    """Outcome of a registration attempt that reached the backend."""
    user_id: Optional[int] = None
    logged_in: bool = False
    destination: Optional[str] = None
    message: str = ""
