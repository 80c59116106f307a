"""
person_registry.auth

Authentication/authorization package.

Responsibilities:
- Signing-key discovery and caching (KeyStore).
- Token validation against the external authorization server.
- The request gate and route-level scope checks.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Dependency order, leaves first: keystore -> validator -> gate -> middleware/deps.
