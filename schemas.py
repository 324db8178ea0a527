"""
Database Schemas for Rating Voyage

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: platform users (admin, user, store-owner)
- store: business listings, carrying the derived rating aggregate
- rating: one user's rating of one store

Documents are stored with snake_case keys. Request bodies and responses use
camelCase; `ApiModel` accepts either on the way in.
"""

import re
from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

Role = Literal["admin", "user", "store-owner"]

Category = Literal["restaurant", "retail", "service", "entertainment", "health", "education", "other"]

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
WEBSITE_RE = re.compile(r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)/?$", re.IGNORECASE)
IMAGE_URL_RE = re.compile(r"^(https?://)?([\da-z.-]+)\.([a-z.]{2,6})([/\w .-]*)/?.*\.(jpg|jpeg|png|gif|webp)$")


def validate_image_urls(urls: Optional[List[str]]) -> Optional[List[str]]:
    if urls is None:
        return urls
    for url in urls:
        if url and not IMAGE_URL_RE.match(url):
            raise ValueError(f"Please enter a valid image URL: {url}")
    return urls


def validate_phone(phone: str) -> str:
    if not PHONE_RE.match(phone):
        raise ValueError("Please enter a valid phone number")
    return phone


def validate_website(website: Optional[str]) -> Optional[str]:
    if website and not WEBSITE_RE.match(website):
        raise ValueError("Please enter a valid website URL")
    return website or None


Email = Annotated[EmailStr, AfterValidator(str.lower)]
Phone = Annotated[str, AfterValidator(validate_phone)]
Website = Annotated[Optional[str], AfterValidator(validate_website)]
ImageUrls = Annotated[List[str], AfterValidator(validate_image_urls)]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


class DayHours(ApiModel):
    open: Optional[str] = None
    close: Optional[str] = None
    is_closed: bool = False


class GeoPoint(ApiModel):
    type: Literal["Point"] = "Point"
    # [longitude, latitude]
    coordinates: List[float] = Field(default_factory=lambda: [0.0, 0.0], min_length=2, max_length=2)


def default_hours() -> Dict[str, DayHours]:
    return {day: DayHours() for day in WEEKDAYS}


class User(ApiModel):
    name: str = Field(..., min_length=2, max_length=60)
    email: Email
    address: str = Field(..., min_length=5, max_length=400)
    password_hash: str = Field(..., description="BCrypt hash of password")
    role: Role = Field("user")
    store_id: Optional[str] = Field(None, description="Store owned by a store-owner")
    is_active: bool = True
    last_login: Optional[datetime] = None


class Store(ApiModel):
    owner_id: str = Field(..., description="Reference to user _id (owner)")
    name: str = Field(..., min_length=2, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    category: Category
    address: str = Field(..., min_length=5, max_length=400)
    phone: Phone
    email: Email
    website: Website = None
    images: ImageUrls = Field(default_factory=list)
    average_rating: float = Field(0, ge=0, le=5)
    total_ratings: int = Field(0, ge=0)
    is_active: bool = True
    operating_hours: Dict[str, DayHours] = Field(default_factory=default_hours)
    location: GeoPoint = Field(default_factory=GeoPoint)


class Rating(ApiModel):
    user_id: str = Field(...)
    store_id: str = Field(...)
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)
    images: ImageUrls = Field(default_factory=list)
    is_verified: bool = False
    helpful_votes: int = Field(0, ge=0)
    reported: bool = False
