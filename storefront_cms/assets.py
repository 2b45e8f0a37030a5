"""
Asset key resolution and orphaned-asset cleanup.

An asset key is the object-store path of an uploaded image; records only
store its public URL. Before an object is removed, every asset-bearing
collection is checked so that an image shared by another record is kept.
"""
from dataclasses import dataclass
from typing import Dict, Optional
import asyncio
import logging

from sqlalchemy.orm import Session

from storefront_cms.models import ASSET_MODELS, HeroBanner, SpecialOffer, LaptopOffer
from storefront_cms.object_store import ObjectStoreClient, is_missing_key_error

logger = logging.getLogger(__name__)

KIND_MODELS = {
    "hero": HeroBanner,
    "special": SpecialOffer,
    "laptop": LaptopOffer,
}

REASON_INVALID_DOMAIN = "invalid_domain"
REASON_IN_USE = "in_use"
REASON_ERROR = "error"
REASON_NOT_CONFIGURED = "storage_not_configured"


def extract_key(public_url: Optional[str], public_base: Optional[str]) -> Optional[str]:
    """
    Strip the configured public base from a stored image URL.

    Returns:
        The object key, or None when the URL is empty, does not start with
        base + "/", or nothing follows the prefix
    """
    base = (public_base or "").rstrip("/")
    url = (public_url or "").strip()
    if not base or not url:
        return None
    prefix = f"{base}/"
    if not url.startswith(prefix):
        return None
    return url[len(prefix):] or None


@dataclass
class AssetCleanupResult:
    """Advisory outcome of an asset cleanup; never a failure of the caller."""
    deleted: bool
    key: Optional[str] = None
    reason: Optional[str] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> dict:
        return {
            "deleted": self.deleted,
            "key": self.key,
            "reason": self.reason,
            "error": str(self.error) if self.error else None,
        }


class AssetManager:
    """
    Decides whether an image may be reclaimed and reclaims it.

    Args:
        store: Object store client; None when storage is not configured
    """

    def __init__(self, store: Optional[ObjectStoreClient]):
        self.store = store

    @property
    def public_base(self) -> Optional[str]:
        return self.store.public_base if self.store else None

    def extract_key(self, public_url: Optional[str]) -> Optional[str]:
        return extract_key(public_url, self.public_base)

    def is_key_in_use(self, db: Session, key: str, exclude_ids: Optional[Dict[str, str]] = None) -> bool:
        """
        Check whether any record other than the excluded ones references the key.

        Args:
            db: Database session
            key: Object key
            exclude_ids: Mapping of content kind ("hero", "special", "laptop")
                to the record id that must not count as a reference

        Returns:
            True if the object must not be deleted
        """
        if not key or not self.public_base:
            return False
        url = f"{self.public_base}/{key}"
        excluded = {KIND_MODELS[kind]: record_id for kind, record_id in (exclude_ids or {}).items() if record_id}

        for model in ASSET_MODELS:
            query = db.query(model.id).filter(model.image_url == url)
            if model in excluded:
                query = query.filter(model.id != excluded[model])
            if query.first() is not None:
                logger.info(f"Asset key still referenced by {model.__tablename__}: key={key}")
                return True
        return False

    async def maybe_delete_old_asset(
        self,
        db: Session,
        kind: str,
        old_url: Optional[str],
        exclude_ids: Optional[Dict[str, str]] = None,
    ) -> AssetCleanupResult:
        """
        Reclaim the object behind a replaced image URL, if nothing else uses it.

        Runs a single delete attempt. Never raises: every failure becomes a
        reason on the returned result.
        """
        if self.store is None:
            return AssetCleanupResult(deleted=False, reason=REASON_NOT_CONFIGURED)

        key = self.extract_key(old_url)
        if not key:
            logger.info(f"Asset cleanup skipped for {kind}: url outside public base ({old_url})")
            return AssetCleanupResult(deleted=False, reason=REASON_INVALID_DOMAIN)

        try:
            if self.is_key_in_use(db, key, exclude_ids):
                return AssetCleanupResult(deleted=False, key=key, reason=REASON_IN_USE)
            await asyncio.to_thread(self.store.delete_object, key)
        except Exception as e:
            if is_missing_key_error(e):
                return AssetCleanupResult(deleted=True, key=key)
            logger.warning(f"Asset cleanup failed for {kind}: key={key}, error={e}")
            return AssetCleanupResult(deleted=False, key=key, reason=REASON_ERROR, error=e)

        logger.info(f"Asset cleanup deleted old {kind} image: key={key}")
        return AssetCleanupResult(deleted=True, key=key)
