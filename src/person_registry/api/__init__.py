"""
person_registry.api

API package for the Person Registry service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring and request/response models.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The API layer stays thin: request parsing + scope checks + delegation to repositories.
