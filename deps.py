"""
Dependencies for FastAPI routes.
"""
from fastapi import Request

from database import SessionLocal
from Route_module.maps_client import GoogleMapsClient
from Utils.api_errors import InternalError


def get_db():
    """
    Database session dependency.
    Yields a database session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_maps_client(request: Request) -> GoogleMapsClient:
    """Maps client created once at startup (see main.lifespan)."""
    client = getattr(request.app.state, "maps_client", None)
    if client is None:
        raise InternalError("Maps client is not configured")
    return client
