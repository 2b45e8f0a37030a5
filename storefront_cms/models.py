"""
Database models for the storefront CMS
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, Index
import uuid

from storefront_cms.db import Base
from storefront_cms.utils.time import utcnow, isoformat_z


def _uuid() -> str:
    return str(uuid.uuid4())


class User(Base):
    """
    Storefront account.

    Native-mode users carry a password hash; federated users are linked to
    the identity provider through external_id.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_uuid)
    external_id = Column(String, unique=True, nullable=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)
    role = Column(String, default="USER", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class HeroBanner(Base):
    """Full-width promotional banner shown at the top of the storefront."""
    __tablename__ = "hero_banners"

    id = Column(String, primary_key=True, default=_uuid)
    title = Column(String, nullable=True)
    subtitle = Column(String, nullable=True)
    cta_text = Column(String, nullable=True)
    cta_link = Column(String, nullable=True)
    image_url = Column(String, nullable=False, index=True)
    status = Column(String, default="ACTIVE", nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_to = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_hero_banners_status_sort", "status", "sort_order"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "subtitle": self.subtitle,
            "ctaText": self.cta_text,
            "ctaLink": self.cta_link,
            "imageUrl": self.image_url,
            "status": self.status,
            "sortOrder": self.sort_order,
            "validFrom": isoformat_z(self.valid_from),
            "validTo": isoformat_z(self.valid_to),
            "createdAt": isoformat_z(self.created_at),
            "updatedAt": isoformat_z(self.updated_at),
        }

    def __repr__(self):
        return f"<HeroBanner(id={self.id}, status={self.status}, image_url={self.image_url})>"


class SpecialOffer(Base):
    """
    Discounted product offer.

    discount_percent is always derived from price_cents and discounted_cents.
    """
    __tablename__ = "special_offers"

    id = Column(String, primary_key=True, default=_uuid)
    product_name = Column(String, nullable=False)
    image_url = Column(String, nullable=False, index=True)
    price_cents = Column(Integer, nullable=False)
    discounted_cents = Column(Integer, nullable=False)
    discount_percent = Column(Integer, default=0, nullable=False)
    status = Column(String, default="ACTIVE", nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_to = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_special_offers_status_sort", "status", "sort_order"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productName": self.product_name,
            "imageUrl": self.image_url,
            "priceCents": self.price_cents,
            "discountedCents": self.discounted_cents,
            "discountPercent": self.discount_percent,
            "status": self.status,
            "sortOrder": self.sort_order,
            "validFrom": isoformat_z(self.valid_from),
            "validTo": isoformat_z(self.valid_to),
            "createdAt": isoformat_z(self.created_at),
            "updatedAt": isoformat_z(self.updated_at),
        }

    def __repr__(self):
        return f"<SpecialOffer(id={self.id}, status={self.status}, discount_percent={self.discount_percent})>"


class LaptopOffer(Base):
    """Laptop deal with an optional free-form specification sheet."""
    __tablename__ = "laptop_offers"

    id = Column(String, primary_key=True, default=_uuid)
    product_name = Column(String, nullable=False)
    image_url = Column(String, nullable=False, index=True)
    price_cents = Column(Integer, nullable=False)
    discounted_cents = Column(Integer, nullable=False)
    discount_percent = Column(Integer, default=0, nullable=False)
    specs = Column(JSON, nullable=True)
    status = Column(String, default="ACTIVE", nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    valid_from = Column(DateTime, nullable=True)
    valid_to = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_laptop_offers_status_sort", "status", "sort_order"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productName": self.product_name,
            "imageUrl": self.image_url,
            "priceCents": self.price_cents,
            "discountedCents": self.discounted_cents,
            "discountPercent": self.discount_percent,
            "specs": self.specs or None,
            "status": self.status,
            "sortOrder": self.sort_order,
            "validFrom": isoformat_z(self.valid_from),
            "validTo": isoformat_z(self.valid_to),
            "createdAt": isoformat_z(self.created_at),
            "updatedAt": isoformat_z(self.updated_at),
        }

    def __repr__(self):
        return f"<LaptopOffer(id={self.id}, status={self.status}, discount_percent={self.discount_percent})>"


# Collections whose rows reference uploaded assets through image_url
ASSET_MODELS = (HeroBanner, SpecialOffer, LaptopOffer)
