"""
Pydantic schemas for storefront CMS request/response validation.

Request bodies use camelCase on the wire. Offer payloads also accept the
shorter price/discounted/name/model field names.
"""
from datetime import date, datetime
from typing import Any, Dict, Literal, Optional
from urllib.parse import urlparse
import re

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from storefront_cms.utils.time import to_naive_utc

Status = Literal["ACTIVE", "INACTIVE"]
Section = Literal["hero", "special", "laptop"]

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _require_https(value: Optional[str]) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("imageUrl cannot be empty")
    if not isinstance(value, str):
        raise ValueError("imageUrl must be a string")
    parsed = urlparse(value.strip())
    if parsed.scheme != "https" or not parsed.netloc:
        raise ValueError("https URL required")
    return value.strip()


def _parse_window_bound(value: Any) -> Any:
    if isinstance(value, str) and _DATE_ONLY.match(value.strip()):
        day = date.fromisoformat(value.strip())
        return datetime(day.year, day.month, day.day)
    return value


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _WindowPayload(_Payload):
    valid_from: Optional[datetime] = Field(None, validation_alias=AliasChoices("validFrom", "valid_from"))
    valid_to: Optional[datetime] = Field(None, validation_alias=AliasChoices("validTo", "valid_to"))

    @field_validator("valid_from", "valid_to", mode="before")
    @classmethod
    def accept_date_only(cls, v: Any) -> Any:
        """Accept YYYY-MM-DD as midnight UTC"""
        return _parse_window_bound(v)

    @field_validator("valid_from", "valid_to")
    @classmethod
    def normalize_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


# ---------------- Hero banners ----------------

class HeroBannerCreate(_WindowPayload):
    title: str = Field(..., min_length=1)
    subtitle: Optional[str] = None
    cta_text: Optional[str] = Field(None, validation_alias=AliasChoices("ctaText", "cta_text"))
    cta_link: Optional[str] = Field(None, validation_alias=AliasChoices("ctaLink", "cta_link"))
    image_url: str = Field(..., validation_alias=AliasChoices("imageUrl", "image_url"))
    status: Status = "ACTIVE"
    sort_order: int = Field(0, ge=0, validation_alias=AliasChoices("sortOrder", "sort", "sort_order"))

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v: Any) -> str:
        return _require_https(v)


class HeroBannerUpdate(_WindowPayload):
    title: Optional[str] = Field(None, min_length=1)
    subtitle: Optional[str] = None
    cta_text: Optional[str] = Field(None, validation_alias=AliasChoices("ctaText", "cta_text"))
    cta_link: Optional[str] = Field(None, validation_alias=AliasChoices("ctaLink", "cta_link"))
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("imageUrl", "image_url"))
    status: Optional[Status] = None
    sort_order: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("sortOrder", "sort", "sort_order"))

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v: Any) -> str:
        return _require_https(v)


# ---------------- Offers ----------------

class OfferCreate(_WindowPayload):
    product_name: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("productName", "name", "model", "product_name")
    )
    image_url: str = Field(..., validation_alias=AliasChoices("imageUrl", "image_url"))
    price_cents: int = Field(..., ge=0, validation_alias=AliasChoices("priceCents", "price", "price_cents"))
    discounted_cents: int = Field(
        ..., ge=0, validation_alias=AliasChoices("discountedCents", "discounted", "discounted_cents")
    )
    discount_percent: Optional[int] = Field(
        None, ge=0, le=100, validation_alias=AliasChoices("discountPercent", "discount_percent")
    )
    status: Status = "ACTIVE"
    sort_order: int = Field(0, ge=0, validation_alias=AliasChoices("sortOrder", "sort", "sort_order"))

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v: Any) -> str:
        return _require_https(v)


class OfferUpdate(_WindowPayload):
    product_name: Optional[str] = Field(
        None, min_length=1, validation_alias=AliasChoices("productName", "name", "model", "product_name")
    )
    image_url: Optional[str] = Field(None, validation_alias=AliasChoices("imageUrl", "image_url"))
    price_cents: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("priceCents", "price", "price_cents"))
    discounted_cents: Optional[int] = Field(
        None, ge=0, validation_alias=AliasChoices("discountedCents", "discounted", "discounted_cents")
    )
    discount_percent: Optional[int] = Field(
        None, ge=0, le=100, validation_alias=AliasChoices("discountPercent", "discount_percent")
    )
    status: Optional[Status] = None
    sort_order: Optional[int] = Field(None, ge=0, validation_alias=AliasChoices("sortOrder", "sort", "sort_order"))

    @field_validator("image_url", mode="before")
    @classmethod
    def validate_image_url(cls, v: Any) -> str:
        return _require_https(v)


class SpecialOfferCreate(OfferCreate):
    pass


class SpecialOfferUpdate(OfferUpdate):
    pass


class LaptopOfferCreate(OfferCreate):
    specs: Optional[Dict[str, Any]] = None


class LaptopOfferUpdate(OfferUpdate):
    specs: Optional[Dict[str, Any]] = None


# ---------------- Responses ----------------

class HardDeleteResponse(BaseModel):
    """Result of a hard delete. s3Deleted/s3DeleteError are advisory only."""
    ok: bool = True
    id: str
    s3Deleted: bool
    s3DeleteError: Optional[str] = None


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    error: ErrorBody


# ---------------- Uploads ----------------

class PresignRequest(_Payload):
    section: Section
    filename: str = Field(..., min_length=1, max_length=200)
    content_type: str = Field(..., validation_alias=AliasChoices("contentType", "content_type"))


class PresignResponse(BaseModel):
    uploadUrl: str
    publicUrl: str
    key: str
    expiresIn: int


# ---------------- Auth ----------------

class UserRegister(_Payload):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8)
    name: Optional[str] = Field(None, min_length=1)


class UserLogin(_Payload):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=8)


class AdminRegister(UserRegister):
    secret: str = Field(..., min_length=12)


class UserOut(BaseModel):
    id: str
    email: str
    role: str
    name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TokenResponse(BaseModel):
    token: str
    user: UserOut


class HandshakeResponse(BaseModel):
    user: UserOut
