"""
clinic_portal.auth

Authentication/authorization package.

Responsibilities:
- Identity and profile models shared by the coordinator, services and API.
- Session token decoding.
- Bearer grants binding HTTP callers to the signed-in session.
- FastAPI dependencies that gate views by grant, principal presence and role.
"""

# Package marker.
