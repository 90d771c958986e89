from pydantic import BaseModel, EmailStr, Field, validator


class RegisterRequest(BaseModel):
    email: EmailStr
    name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8, max_length=72)

    @validator("email")
    def lowercase_email(cls, v):
        return v.lower()

    @validator("name")
    def strip_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @validator("email")
    def lowercase_email(cls, v):
        return v.lower()


class TokenResponse(BaseModel):
    """Bearer pair returned by register, login and refresh"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    refresh_token: str
