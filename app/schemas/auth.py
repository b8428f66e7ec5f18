# app/schemas/auth.py
from pydantic import ConfigDict, EmailStr
from sqlmodel import SQLModel, Field


class AdminLogin(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1, max_length=200)


class TokenRead(SQLModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
