from datetime import datetime

from pydantic import BaseModel, Field


class LoginIn(BaseModel):
    username: str = Field(min_length=1, max_length=80)
    password: str = Field(min_length=1, max_length=200)


class AdminOut(BaseModel):
    id: str
    username: str
    display_name: str | None


class LoginOut(BaseModel):
    token: str
    expires_at: datetime
    admin: AdminOut


class AdminCreate(BaseModel):
    username: str = Field(min_length=3, max_length=80)
    password: str = Field(min_length=8, max_length=200)
    display_name: str | None = Field(default=None, max_length=120)
