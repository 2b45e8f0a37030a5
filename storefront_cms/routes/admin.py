"""
Admin CRUD endpoints for promotional content.

One router per content kind, all built from the same factory:

    GET    /admin/{route}          list with filters and paging
    POST   /admin/{route}          create
    GET    /admin/{route}/{id}     fetch one
    PATCH  /admin/{route}/{id}     partial update (may replace the image)
    DELETE /admin/{route}/{id}     hard or soft delete per policy
"""
from typing import Dict, List, Optional
import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from storefront_cms.assets import AssetManager
from storefront_cms.auth import require_admin
from storefront_cms.config import settings
from storefront_cms.db import get_db
from storefront_cms.deps import get_object_store, get_policies
from storefront_cms.errors import APIError, CMSError
from storefront_cms.lifecycle import ContentOrchestrator, EntityPolicy, build_policies
from storefront_cms.object_store import ObjectStoreClient
from storefront_cms.schemas import ErrorResponse, Status
from storefront_cms.utils.pagination import parse_pagination

logger = logging.getLogger(__name__)


def _internal_error(db: Session, event: str, e: Exception) -> APIError:
    db.rollback()
    logger.error(f"{event} {e}", exc_info=True)
    return APIError(status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error")


def build_router(policy: EntityPolicy) -> APIRouter:
    """
    Build the admin router for one content kind.

    Route shapes and request schemas come from `policy`; the lifecycle
    rules (rounding, tolerance, delete mode) are read per request from the
    application's configured policies.
    """
    kind = policy.kind
    router = APIRouter(
        prefix=f"/admin/{policy.route}",
        tags=["admin"],
        dependencies=[Depends(require_admin)],
        responses={code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 500)},
    )

    def get_orchestrator(
        store: Optional[ObjectStoreClient] = Depends(get_object_store),
        policies: Dict[str, EntityPolicy] = Depends(get_policies),
    ) -> ContentOrchestrator:
        return ContentOrchestrator(policies[kind], AssetManager(store))

    @router.get("")
    async def list_records(
        status_filter: Optional[Status] = Query(None, alias="status"),
        q: Optional[str] = Query(None, max_length=200),
        active_now: Optional[bool] = Query(None, alias="activeNow"),
        limit: Optional[str] = Query(None),
        offset: Optional[str] = Query(None),
        page: Optional[str] = Query(None),
        page_size: Optional[str] = Query(None, alias="pageSize"),
        db: Session = Depends(get_db),
        orchestrator: ContentOrchestrator = Depends(get_orchestrator),
    ):
        """List records ordered by sortOrder ascending, newest id first on ties."""
        try:
            pagination = parse_pagination(limit=limit, offset=offset, page=page, page_size=page_size)
            return orchestrator.list(db, pagination, status=status_filter, q=q, active_now=active_now)
        except (CMSError, APIError):
            raise
        except Exception as e:
            raise _internal_error(db, f"admin:{kind}:list:fail", e) from e

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_record(
        payload: policy.create_schema,
        db: Session = Depends(get_db),
        orchestrator: ContentOrchestrator = Depends(get_orchestrator),
    ):
        logger.info(f"admin:{kind}:create:enter")
        try:
            record = orchestrator.create(db, payload)
            return record.to_dict()
        except (CMSError, APIError):
            raise
        except Exception as e:
            raise _internal_error(db, f"admin:{kind}:create:fail", e) from e

    @router.get("/{record_id}")
    async def get_record(
        record_id: str,
        db: Session = Depends(get_db),
        orchestrator: ContentOrchestrator = Depends(get_orchestrator),
    ):
        try:
            return orchestrator.get(db, record_id).to_dict()
        except (CMSError, APIError):
            raise
        except Exception as e:
            raise _internal_error(db, f"admin:{kind}:get:fail", e) from e

    @router.patch("/{record_id}")
    async def update_record(
        record_id: str,
        payload: policy.update_schema,
        db: Session = Depends(get_db),
        orchestrator: ContentOrchestrator = Depends(get_orchestrator),
    ):
        """
        Apply a partial update.

        When imageUrl is replaced, the old object is reclaimed after the
        update is committed; a failed reclaim never changes the response.
        """
        logger.info(f"admin:{kind}:update:enter id={record_id}")
        try:
            record, _cleanup = await orchestrator.update(db, record_id, payload)
            return record.to_dict()
        except (CMSError, APIError):
            raise
        except Exception as e:
            raise _internal_error(db, f"admin:{kind}:update:fail", e) from e

    @router.delete("/{record_id}")
    async def delete_record(
        record_id: str,
        db: Session = Depends(get_db),
        orchestrator: ContentOrchestrator = Depends(get_orchestrator),
    ):
        """
        Delete a record.

        Hard delete returns {ok, id, s3Deleted, s3DeleteError}; the storage
        fields are advisory. Soft delete returns the INACTIVE record.
        """
        logger.info(f"admin:{kind}:delete:enter id={record_id}")
        try:
            return await orchestrator.delete(db, record_id)
        except (CMSError, APIError):
            raise
        except Exception as e:
            raise _internal_error(db, f"admin:{kind}:delete:fail", e) from e

    return router


routers: List[APIRouter] = [build_router(policy) for policy in build_policies(settings).values()]
