"""
clinic_portal.api

Backend-for-frontend HTTP API of the clinic portal.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request validation + role gating + delegation to services.
