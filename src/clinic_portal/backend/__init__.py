"""
clinic_portal.backend

Adapters for the hosted auth/database/storage backend.

Responsibilities:
- Implement the session-layer contracts (AuthBackend, ProfileStore) against the
  hosted service.
- Upload payment receipts to hosted storage.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Library exceptions (httpx, SQLAlchemy) are translated into session-layer errors
# here so the coordinator never depends on transport specifics.
