"""
clinic_portal.db.repositories

Repository package.

Responsibilities:
- Group data-access repositories for the clinic tables.
"""

# Package marker; repositories are imported directly from submodules.


# --- Module Notes -----------------------------------------------------------
# Repositories are intentionally thin: they flush, services commit.
