from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

Role = Literal["patient", "doctor", "pharmacy", "hospital"]


class UserBase(BaseModel):
    email: EmailStr
    name: str | None = None
    phone: str | None = None


class UserCreate(UserBase):
    password: str = Field(min_length=8)
    role: Role
    profile: dict[str, Any] = Field(default_factory=dict)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserOut(UserBase):
    id: int
    role: Role

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    role: Role


class PasswordChangeIn(BaseModel):
    current_password: str
    new_password: str
