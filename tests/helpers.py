"""
tests.helpers

Constants and key helpers shared by fixtures and tests.
"""

from __future__ import annotations

import base64
import json
from typing import Any

from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

ISSUER = "https://auth.example.test/auth/issuer"
AUDIENCE = "person-registry"
KID = "signing-key-1"


def public_jwk(private_key: rsa.RSAPrivateKey, kid: str, alg: str = "RS256") -> dict[str, Any]:
    jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    jwk.update({"kid": kid, "alg": alg, "use": "sig"})
    return jwk


def b64_json(data: dict[str, Any]) -> str:
    """
    One base64url JWT segment, for hand-built tokens PyJWT refuses to encode.
    """

    raw = json.dumps(data, separators=(",", ":")).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()
