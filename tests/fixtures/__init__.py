"""Test fixture package for region-registry.

Contains fixtures for:
- An in-memory SQLite database behind a connected ``DatabaseManager``
- A scripted geocoding provider
- The FastAPI application and an async HTTP client
"""

from .api import api_client, auth_headers, registered_user, test_app
from .db import db_manager, db_session
from .geocoding import FakeGeocodingProvider, fake_provider, geocoder

__all__ = [
    # Database
    "db_manager",
    "db_session",
    # Geocoding
    "FakeGeocodingProvider",
    "fake_provider",
    "geocoder",
    # API
    "api_client",
    "auth_headers",
    "registered_user",
    "test_app",
]
