# models.py
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError


Category = Literal["Restaurant", "Retail", "Services", "Entertainment"]
Rating = Literal["5", "4.5", "4", "3.5", "3", "2.5", "2"]


class CamelModel(BaseModel):
    """Snake_case attributes in Python, camelCase keys on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Users ---

class UserRegister(CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    confirm_password: str
    email: EmailStr
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value, info):
        if "password" in info.data and value != info.data["password"]:
            raise PydanticCustomError("password_mismatch", "Passwords must match")
        return value

class UserOut(CamelModel):
    id: int
    username: str
    email: str
    display_name: Optional[str] = None
    photo_url: Optional[str] = Field(None, alias="photoURL")
    created_at: datetime


# --- Establishments ---

class EstablishmentCreate(CamelModel):
    name: str = Field(..., min_length=1)
    category: Category
    location: str = Field(..., min_length=1)
    description: Optional[str] = None
    rating: Rating = "5"
    cover_image: Optional[str] = None
    user_id: Optional[int] = None

class EstablishmentUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[Category] = None
    location: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    rating: Optional[Rating] = None
    cover_image: Optional[str] = None
    user_id: Optional[int] = None

    @model_validator(mode="after")
    def required_columns_not_null(self):
        for field in ("name", "category", "location", "rating", "user_id"):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise PydanticCustomError("not_nullable", "{field} cannot be null", {"field": to_camel(field)})
        return self

class EstablishmentOut(CamelModel):
    id: int
    name: str
    category: str
    location: str
    description: Optional[str] = None
    rating: Optional[str] = None
    cover_image: Optional[str] = None
    user_id: int
    created_at: datetime


# --- Attachments ---

class AttachmentCreate(CamelModel):
    file_name: str = Field(..., min_length=1)
    file_type: str = Field(..., min_length=1)
    file_size: str = Field(..., min_length=1)
    file_path: str = Field(..., min_length=1)
    storage_key: Optional[str] = None
    establishment_id: int
    user_id: Optional[int] = None

class AttachmentOut(CamelModel):
    id: int
    file_name: str
    file_type: str
    file_size: str
    file_path: str
    storage_key: Optional[str] = None
    establishment_id: int
    user_id: int
    upload_date: datetime

class SuccessResponse(BaseModel):
    success: bool


# --- Canonical client shapes (same for every backend) ---

class ClientEstablishment(CamelModel):
    id: str
    name: str
    category: str
    location: str
    description: Optional[str] = None
    rating: str = "5"
    cover_image: Optional[str] = None
    user_id: Optional[str] = None
    created_at: datetime

class ClientAttachment(CamelModel):
    id: str
    file_name: str
    file_type: str
    file_size: str
    file_path: str
    storage_key: Optional[str] = None
    establishment_id: str
    user_id: str
    upload_date: datetime
