from pydantic import BaseModel, EmailStr, Field
from typing import Any, Dict, List, Optional


class RecipientBase(BaseModel):
    email: EmailStr
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    company: Optional[str] = Field(default=None, max_length=255)
    position: Optional[str] = Field(default=None, max_length=255)
    tags: List[str] = []
    notes: Optional[str] = None
    metadata: Dict[str, Any] = {}


class RecipientCreate(RecipientBase):
    pass


class RecipientUpdate(RecipientBase):
    """Complete replacement of every mutable field."""
    is_active: bool = True


class RecipientPatch(BaseModel):
    """Partial update: only the fields that are set are changed."""
    email: Optional[EmailStr] = None
    first_name: Optional[str] = Field(default=None, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    phone: Optional[str] = Field(default=None, max_length=20)
    company: Optional[str] = Field(default=None, max_length=255)
    position: Optional[str] = Field(default=None, max_length=255)
    tags: Optional[List[str]] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None


class RecipientBulkCreate(BaseModel):
    recipients: List[RecipientCreate] = Field(min_length=1)
