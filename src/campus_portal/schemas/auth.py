"""Pydantic schemas for login, registration and token refresh."""

from typing import Literal

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    id: str = Field(..., min_length=1, description="Campus id: admin, faculty or student id")
    password: str = Field(..., min_length=1)
    role: Literal["admin", "faculty", "student"]


class LoggedInUser(BaseModel):
    id: str
    role: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: LoggedInUser


class RefreshRequest(BaseModel):
    refresh_token: str


class RegisterStudentRequest(BaseModel):
    student_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=6)


class MessageResponse(BaseModel):
    message: str
