"""
storefront_cms package

Backend API for a storefront's content-management layer. It includes:

- FastAPI application (`main.py`)
- SQLAlchemy models and database integration (`models.py`, `db.py`)
- Authentication and JWT logic (`auth.py`)
- Promotional content lifecycle and object-store asset cleanup
  (`lifecycle.py`, `assets.py`, `object_store.py`, `discounts.py`)
- Pydantic schemas (`schemas.py`)
"""
