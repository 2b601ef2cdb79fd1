# healthcare_pro/schemas/auth.py
from typing import Optional

from pydantic import BaseModel, EmailStr, constr


class LoginAny(BaseModel):
    email: Optional[EmailStr] = None
    username: Optional[EmailStr] = None
    password: str


class RegisterIn(BaseModel):
    email: EmailStr
    password: constr(min_length=6, max_length=128)
    name: Optional[str] = None


class RefreshIn(BaseModel):
    refresh_token: str


class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
