from pydantic import BaseModel, EmailStr, Field


class ProfileUpdate(BaseModel):
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    company_name: str = Field(default="", max_length=255)


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=6, max_length=128)


class EmailChange(BaseModel):
    email: EmailStr
