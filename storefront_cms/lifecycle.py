"""
Lifecycle of promotional content records.

One orchestrator serves hero banners, special offers and laptop offers. The
differences between the kinds (pricing, rounding rule, discount tolerance,
hard vs soft delete) live in an EntityPolicy built from settings.

Ordering rule: the database is always mutated and committed first. Object
store cleanup runs afterwards, is best-effort, and only ever reports back
through advisory fields and logs.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type
import logging

from pydantic import BaseModel
from sqlalchemy import and_, not_, or_
from sqlalchemy.orm import Session

from storefront_cms.assets import AssetCleanupResult, AssetManager, REASON_NOT_CONFIGURED
from storefront_cms.config import Settings
from storefront_cms.discounts import compute_discount_percent, discount_within_tolerance
from storefront_cms.errors import NotFound, ValidationFailed, issue
from storefront_cms.models import HeroBanner, LaptopOffer, SpecialOffer
from storefront_cms.schemas import (
    HardDeleteResponse,
    HeroBannerCreate,
    HeroBannerUpdate,
    LaptopOfferCreate,
    LaptopOfferUpdate,
    SpecialOfferCreate,
    SpecialOfferUpdate,
)
from storefront_cms.utils.pagination import Pagination
from storefront_cms.utils.time import utcnow

logger = logging.getLogger(__name__)

DELETE_HARD = "hard"
DELETE_SOFT = "soft"
UNPARSABLE_KEY = "unparsable_or_missing_key"

# Columns that may be cleared with an explicit null in a PATCH body
NULLABLE_FIELDS = {"subtitle", "cta_text", "cta_link", "valid_from", "valid_to", "specs", "discount_percent"}

# Wire names used in validation issues
WIRE_NAMES = {
    "price_cents": "priceCents",
    "discounted_cents": "discountedCents",
    "discount_percent": "discountPercent",
    "image_url": "imageUrl",
    "product_name": "productName",
    "sort_order": "sortOrder",
    "valid_from": "validFrom",
    "valid_to": "validTo",
    "cta_text": "ctaText",
    "cta_link": "ctaLink",
}


@dataclass(frozen=True)
class EntityPolicy:
    """Lifecycle rules for one content kind."""
    kind: str
    route: str
    label: str
    model: Type
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    search_column: str
    priced: bool
    rounding: str = "floor"
    tolerance: int = 1
    delete_mode: str = DELETE_HARD


def build_policies(source: Settings) -> Dict[str, EntityPolicy]:
    """Build the per-kind policies from configuration."""
    tolerance = max(0, source.DISCOUNT_TOLERANCE_PERCENT)
    return {
        "hero": EntityPolicy(
            kind="hero",
            route="hero-banners",
            label="Hero banner",
            model=HeroBanner,
            create_schema=HeroBannerCreate,
            update_schema=HeroBannerUpdate,
            search_column="title",
            priced=False,
            delete_mode=source.HERO_BANNER_DELETE_MODE,
        ),
        "special": EntityPolicy(
            kind="special",
            route="special-offers",
            label="Special offer",
            model=SpecialOffer,
            create_schema=SpecialOfferCreate,
            update_schema=SpecialOfferUpdate,
            search_column="product_name",
            priced=True,
            rounding=source.SPECIAL_OFFER_ROUNDING,
            tolerance=tolerance,
            delete_mode=source.SPECIAL_OFFER_DELETE_MODE,
        ),
        "laptop": EntityPolicy(
            kind="laptop",
            route="laptop-offers",
            label="Laptop offer",
            model=LaptopOffer,
            create_schema=LaptopOfferCreate,
            update_schema=LaptopOfferUpdate,
            search_column="product_name",
            priced=True,
            rounding=source.LAPTOP_OFFER_ROUNDING,
            tolerance=tolerance,
            delete_mode=source.LAPTOP_OFFER_DELETE_MODE,
        ),
    }


def validity_window(model, now):
    """SQL predicate: now falls inside [valid_from, valid_to], missing bounds open."""
    return and_(
        or_(model.valid_from.is_(None), model.valid_from <= now),
        or_(model.valid_to.is_(None), model.valid_to >= now),
    )


class ContentOrchestrator:
    """
    CRUD for one content kind, coupled to asset cleanup.

    Args:
        policy: Lifecycle rules for the kind
        assets: Asset manager used to reclaim replaced or deleted images
    """

    def __init__(self, policy: EntityPolicy, assets: AssetManager):
        self.policy = policy
        self.assets = assets
        self.model = policy.model

    def _event(self, op: str, phase: str) -> str:
        return f"admin:{self.policy.kind}:{op}:{phase}"

    # ---------------- validation ----------------

    def _derive_discount(self, price: int, discounted: int, provided: Optional[int]) -> int:
        """
        Enforce discounted <= price and derive the canonical discount percent.

        Raises:
            ValidationFailed: On an inverted price pair or a client percent
                outside the tolerance
        """
        if discounted > price:
            raise ValidationFailed(
                "discountedCents must be ≤ priceCents",
                [issue("discountedCents", "discountedCents must be ≤ priceCents")],
            )
        computed = compute_discount_percent(price, discounted, self.policy.rounding)
        if not discount_within_tolerance(provided, computed, self.policy.tolerance):
            message = f"discountPercent inconsistent with price/discount (±{self.policy.tolerance}%)"
            raise ValidationFailed(message, [issue("discountPercent", f"{message}; expected {computed}")])
        return computed

    @staticmethod
    def _check_window(valid_from, valid_to) -> None:
        if valid_from is not None and valid_to is not None and valid_from > valid_to:
            raise ValidationFailed(
                "validFrom must be before or equal to validTo",
                [issue("validFrom", "validFrom must be before or equal to validTo")],
            )

    # ---------------- operations ----------------

    def create(self, db: Session, dto: BaseModel):
        """Validate, derive the discount and persist a new record."""
        data = dto.model_dump()
        self._check_window(data.get("valid_from"), data.get("valid_to"))
        provided = data.pop("discount_percent", None)
        if self.policy.priced:
            data["discount_percent"] = self._derive_discount(data["price_cents"], data["discounted_cents"], provided)

        record = self.model(**data)
        db.add(record)
        db.commit()
        db.refresh(record)
        logger.info(f"{self._event('create', 'ok')} id={record.id}")
        return record

    def list(
        self,
        db: Session,
        pagination: Pagination,
        status: Optional[str] = None,
        q: Optional[str] = None,
        active_now: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Filter and page records, ordered sortOrder ASC then id DESC."""
        query = db.query(self.model)
        if status:
            query = query.filter(self.model.status == status)
        if q and q.strip():
            column = getattr(self.model, self.policy.search_column)
            query = query.filter(column.icontains(q.strip(), autoescape=True))
        if active_now is not None:
            window = validity_window(self.model, utcnow())
            query = query.filter(window if active_now else not_(window))

        total = query.count()
        items = (
            query.order_by(self.model.sort_order.asc(), self.model.id.desc())
            .offset(pagination.offset)
            .limit(pagination.limit)
            .all()
        )
        logger.info(f"{self._event('list', 'ok')} count={len(items)} total={total}")
        return {"items": [item.to_dict() for item in items], "total": total, **pagination.envelope()}

    def get(self, db: Session, record_id: str):
        record = db.query(self.model).filter(self.model.id == record_id).first()
        if record is None:
            logger.warning(f"{self._event('get', 'not_found')} id={record_id}")
            raise NotFound(f"{self.policy.label} not found")
        return record

    async def update(self, db: Session, record_id: str, dto: BaseModel) -> Tuple[Any, Optional[AssetCleanupResult]]:
        """
        Merge a partial update, persist it, then reclaim a replaced image.

        The old image is only considered when imageUrl changed to a new
        non-empty value. The cleanup result is advisory.

        Returns:
            Tuple of (updated record, cleanup result or None)
        """
        fields = dto.model_dump(exclude_unset=True)
        nulls = [name for name, value in fields.items() if value is None and name not in NULLABLE_FIELDS]
        if nulls:
            raise ValidationFailed(
                "Fields cannot be null",
                [issue(WIRE_NAMES.get(name, name), f"{WIRE_NAMES.get(name, name)} cannot be null") for name in nulls],
            )

        record = self.get(db, record_id)
        old_url = record.image_url

        self._check_window(fields.get("valid_from", record.valid_from), fields.get("valid_to", record.valid_to))
        provided = fields.pop("discount_percent", None)
        if self.policy.priced:
            price = fields.get("price_cents", record.price_cents)
            discounted = fields.get("discounted_cents", record.discounted_cents)
            fields["discount_percent"] = self._derive_discount(price, discounted, provided)

        for name, value in fields.items():
            setattr(record, name, value)
        db.commit()
        db.refresh(record)
        logger.info(f"{self._event('update', 'ok')} id={record_id}")

        new_url = fields.get("image_url")
        if not new_url or new_url == old_url:
            return record, None

        cleanup = await self.assets.maybe_delete_old_asset(db, self.policy.kind, old_url, {self.policy.kind: record_id})
        if cleanup.deleted:
            logger.info(f"{self._event('update', 'asset_deleted')} id={record_id} key={cleanup.key}")
        else:
            logger.warning(
                f"{self._event('update', 'asset_kept')} id={record_id} key={cleanup.key} "
                f"reason={cleanup.reason} error={cleanup.error}"
            )
        return record, cleanup

    async def delete(self, db: Session, record_id: str) -> Dict[str, Any]:
        """
        Remove a record according to the kind's delete mode.

        Soft: status becomes INACTIVE and the image is kept; returns the record.
        Hard: the row is deleted and committed first, then the image is
        deleted with retries; returns {ok, id, s3Deleted, s3DeleteError}.
        """
        record = self.get(db, record_id)

        if self.policy.delete_mode == DELETE_SOFT:
            record.status = "INACTIVE"
            db.commit()
            db.refresh(record)
            logger.info(f"{self._event('delete', 'soft_ok')} id={record_id}")
            return record.to_dict()

        image_url = record.image_url
        db.delete(record)
        db.commit()
        logger.info(f"{self._event('delete', 'db_ok')} id={record_id}")

        deleted, error = await self._reclaim(db, record_id, image_url)
        return HardDeleteResponse(id=record_id, s3Deleted=deleted, s3DeleteError=error).model_dump()

    async def _reclaim(self, db: Session, record_id: str, image_url: Optional[str]) -> Tuple[bool, Optional[str]]:
        store = self.assets.store
        if store is None:
            logger.warning(f"{self._event('delete', 's3_skipped')} id={record_id} reason={REASON_NOT_CONFIGURED}")
            return False, REASON_NOT_CONFIGURED

        key = self.assets.extract_key(image_url)
        if not key:
            logger.warning(f"{self._event('delete', 's3_skipped')} id={record_id} url={image_url}")
            return False, UNPARSABLE_KEY

        try:
            if self.assets.is_key_in_use(db, key):
                logger.info(f"{self._event('delete', 's3_kept')} id={record_id} key={key} reason=in_use")
                return False, "in_use"
        except Exception as e:
            logger.error(f"{self._event('delete', 's3_check_fail')} id={record_id} key={key}: {e}", exc_info=True)
            return False, str(e) or type(e).__name__

        def on_attempt(attempt: int, ok: bool, error: Optional[BaseException]) -> None:
            logger.info(f"{self._event('delete', 's3_attempt')} id={record_id} key={key} attempt={attempt} ok={ok} error={error}")

        result = await store.delete_object_with_retry(key, on_attempt=on_attempt)
        if result.ok:
            return True, None
        logger.warning(
            f"{self._event('delete', 's3_fail')} id={record_id} key={key} attempts={result.attempts} error={result.error}"
        )
        return False, result.error_message


def describe_policies(policies: Dict[str, EntityPolicy]) -> List[str]:
    """One log line per kind, emitted at startup."""
    return [
        f"{p.kind}: route=/admin/{p.route} delete={p.delete_mode}"
        + (f" rounding={p.rounding} tolerance=±{p.tolerance}" if p.priced else "")
        for p in policies.values()
    ]
