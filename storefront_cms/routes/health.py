"""
Health check endpoint for the storefront CMS
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from storefront_cms.db import check_db_connection, get_db

router = APIRouter(tags=["health"])


@router.get("/healthz", status_code=status.HTTP_200_OK)
async def health_check(db: Session = Depends(get_db)):
    """
    Liveness plus database connectivity.

    Returns:
        dict: {ok, db}; 503 with an error message when the database is unreachable
    """
    if check_db_connection(db):
        return {"ok": True, "db": True}
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"ok": False, "db": False, "error": "Database connection failed"},
    )
