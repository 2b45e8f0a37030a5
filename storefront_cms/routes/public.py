"""
Public storefront endpoints (no authentication).

Only ACTIVE records inside their validity window are ever returned.
"""
from typing import Any, Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront_cms.db import get_db
from storefront_cms.errors import APIError
from storefront_cms.lifecycle import validity_window
from storefront_cms.models import HeroBanner, LaptopOffer, SpecialOffer
from storefront_cms.utils.pagination import parse_pagination
from storefront_cms.utils.time import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])

HOME_LIMITS = {
    "heroBanners": (HeroBanner, 5),
    "specialOffers": (SpecialOffer, 10),
    "laptopOffers": (LaptopOffer, 10),
}


def _visible(db: Session, model):
    return db.query(model).filter(model.status == "ACTIVE", validity_window(model, utcnow()))


def _listing(db: Session, model, limit: Optional[str], offset: Optional[str]) -> List[Dict[str, Any]]:
    pagination = parse_pagination(limit=limit, offset=offset)
    try:
        items = (
            _visible(db, model)
            .order_by(model.sort_order.asc(), model.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
    except Exception as e:
        logger.error(f"public:{model.__tablename__}:list:fail {e}", exc_info=True)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error") from e
    return [item.to_dict() for item in items]


@router.get("/hero-banners")
async def list_hero_banners(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    return _listing(db, HeroBanner, limit, offset)


@router.get("/special-offers")
async def list_special_offers(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    return _listing(db, SpecialOffer, limit, offset)


@router.get("/laptop-offers")
async def list_laptop_offers(
    limit: Optional[str] = Query(None),
    offset: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    return _listing(db, LaptopOffer, limit, offset)


@router.get("/home")
async def home(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Storefront landing payload.

    Returns:
        dict: heroBanners (max 5), specialOffers and laptopOffers (max 10 each),
        ordered by sortOrder ascending then newest first
    """
    try:
        payload = {}
        for name, (model, cap) in HOME_LIMITS.items():
            rows = (
                _visible(db, model)
                .order_by(model.sort_order.asc(), model.created_at.desc())
                .limit(cap)
                .all()
            )
            payload[name] = [row.to_dict() for row in rows]
        return payload
    except Exception as e:
        logger.error(f"public:home:fail {e}", exc_info=True)
        raise APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error") from e
