"""
clinic_portal.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models for the clinic tables, engine/session setup, and repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# In production `database_url` points at the hosted backend's Postgres; tests and
# local dev use sqlite through aiosqlite.
