"""
Request-scoped dependencies built from application state.
"""
from typing import Dict, Optional

from fastapi import Request

from storefront_cms.config import settings
from storefront_cms.lifecycle import EntityPolicy, build_policies
from storefront_cms.object_store import ObjectStoreClient


def get_object_store(request: Request) -> Optional[ObjectStoreClient]:
    """The object store built at startup, or None when storage is not configured."""
    return getattr(request.app.state, "object_store", None)


def get_policies(request: Request) -> Dict[str, EntityPolicy]:
    policies = getattr(request.app.state, "policies", None)
    return policies if policies is not None else build_policies(settings)
