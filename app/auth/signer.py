"""
Signed identity assertions for the open-banking API.

Every outbound call carries a short-lived RS256 JWT proving the broker's
identity. The header names the algorithm and the registered application id
(kid); the body carries issuer, audience, issued-at and expiry.

A fresh assertion is minted for every call. Nothing is cached, so a
long-running process never presents a token whose iat has drifted out of
the upstream's accepted window.
"""

import base64
import binascii
import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from app.engine.errors import SigningError

logger = logging.getLogger("payflow.signer")

ISSUER = "enablebanking.com"
AUDIENCE = "api.enablebanking.com"
ALGORITHM = "RS256"
DEFAULT_TTL_SECONDS = 3600


@dataclass(frozen=True)
class AssertionClaims:
    """Body of a signed assertion."""

    iss: str
    aud: str
    iat: int
    exp: int


def decode_private_key(encoded: str) -> RSAPrivateKey:
    """
    Decode a base64-wrapped PEM private key.

    Raises:
        SigningError: If the value is not base64, not PEM, or not an RSA key.
    """
    try:
        pem = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as e:
        raise SigningError(f"Private key is not valid base64: {e}") from e

    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as e:
        raise SigningError(f"Private key could not be parsed: {e}") from e

    if not isinstance(key, RSAPrivateKey):
        raise SigningError(f"Private key must be RSA for {ALGORITHM}, got {type(key).__name__}")
    return key


class AssertionSigner:
    """Mints signed assertions from process-wide key material."""

    def __init__(
        self,
        app_id: Optional[str],
        private_key: Optional[RSAPrivateKey],
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._app_id = app_id
        self._private_key = private_key
        self._ttl = ttl_seconds
        self._clock = clock

    @classmethod
    def from_encoded_key(
        cls,
        app_id: Optional[str],
        encoded_key: Optional[str],
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> "AssertionSigner":
        """
        Build a signer from configuration values.

        A missing key yields a signer that fails on first use; a malformed
        key fails here, so a bad deployment never starts serving.
        """
        key = decode_private_key(encoded_key) if encoded_key else None
        return cls(app_id, key, ttl_seconds=ttl_seconds)

    @property
    def app_id(self) -> Optional[str]:
        return self._app_id

    @property
    def is_configured(self) -> bool:
        return bool(self._app_id) and self._private_key is not None

    def claims(self) -> AssertionClaims:
        now = int(self._clock())
        return AssertionClaims(iss=ISSUER, aud=AUDIENCE, iat=now, exp=now + self._ttl)

    def mint(self) -> str:
        """
        Build and sign a new assertion.

        Raises:
            SigningError: If credentials are missing or signing fails.
        """
        if not self.is_configured:
            raise SigningError("Missing Enable Banking credentials")

        try:
            return jwt.encode(
                asdict(self.claims()),
                self._private_key,
                algorithm=ALGORITHM,
                headers={"kid": self._app_id, "typ": "JWT"},
            )
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.error("Failed to sign assertion: %s", e)
            raise SigningError(f"Failed to sign assertion: {e}") from e
