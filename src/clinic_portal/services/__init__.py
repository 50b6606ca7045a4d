"""
clinic_portal.services

Service-layer package.

Responsibilities:
- Own transaction boundaries for clinic data (patients, payments, appointments).
- Apply role-gated visibility and client-side search on top of the repositories.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services raise LookupError / PermissionError / ValueError; the API maps them to
# 404 / 403 / 422.
