"""
Signed credential cache for Info Hub Aggregator.
Mints EdDSA-signed bearer tokens for QWeather and reuses them until they are
close to expiry.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from ..core.logging_config import create_logger
from ..providers.base import CredentialError

logger = create_logger(__name__)

SIGNING_ALGORITHM = "EdDSA"
DEFAULT_TOKEN_TTL = 86400
DEFAULT_RENEWAL_MARGIN = 300
DEFAULT_CLOCK_SKEW = 30


@dataclass(frozen=True)
class Token:
    """An issued bearer token and its validity window (epoch seconds)."""
    value: str
    issued_at: int
    expires_at: int

    def remaining(self, now: float) -> float:
        return self.expires_at - now


def read_key_file(path: str) -> bytes:
    """Read PEM key material from disk."""
    with open(path, "rb") as key_file:
        return key_file.read()


class CredentialTokenCache:
    """Process-wide holder of one live signed token.

    Construct once at startup and hand the instance to every consumer. The
    clock and key reader are injectable so renewal can be driven in tests.
    Renewal is idempotent: two callers racing on a stale cache each mint a
    valid token and the last write wins.
    """

    def __init__(
        self,
        private_key_path: str,
        credential_id: str,
        project_id: str,
        ttl_seconds: int = DEFAULT_TOKEN_TTL,
        renewal_margin: int = DEFAULT_RENEWAL_MARGIN,
        clock_skew: int = DEFAULT_CLOCK_SKEW,
        clock: Callable[[], float] = time.time,
        key_reader: Callable[[str], bytes] = read_key_file
    ):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.private_key_path = private_key_path
        self.credential_id = credential_id
        self.project_id = project_id
        self.ttl_seconds = ttl_seconds
        self.renewal_margin = renewal_margin
        self.clock_skew = clock_skew
        self._clock = clock
        self._key_reader = key_reader
        self._token: Optional[Token] = None

    @property
    def cached_token(self) -> Optional[Token]:
        return self._token

    def get_token(self) -> Token:
        """Return the cached token, renewing it when it is close to expiry."""
        token = self._token
        now = self._clock()

        if token is not None and token.remaining(now) > self.renewal_margin:
            return token

        logger.info("Renewing signed credential", extra={
            "credential_id": self.credential_id,
            "reason": "empty" if token is None else "near_expiry"
        })
        token = self.generate_token(self.ttl_seconds)
        # Single reference assignment; readers see either the old or the new token.
        self._token = token
        return token

    def generate_token(self, ttl_seconds: int) -> Token:
        """Sign a fresh token valid for ``ttl_seconds``. Does not touch the cache."""
        private_key = self._load_private_key()

        issued_at = math.floor(self._clock()) - self.clock_skew
        expires_at = issued_at + ttl_seconds

        headers = {"kid": self.credential_id, "typ": None}
        payload = {
            "sub": self.project_id,
            "iat": issued_at,
            "exp": expires_at
        }

        try:
            value = jwt.encode(payload, private_key, algorithm=SIGNING_ALGORITHM, headers=headers)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error("Failed to sign credential", extra={
                "credential_id": self.credential_id,
                "error": str(e)
            })
            raise CredentialError(f"Failed to sign token: {str(e)}", "qweather")

        logger.debug("Issued signed credential", extra={
            "credential_id": self.credential_id,
            "iat": issued_at,
            "exp": expires_at
        })
        return Token(value=value, issued_at=issued_at, expires_at=expires_at)

    def invalidate(self) -> None:
        """Drop the cached token so the next caller mints a new one."""
        self._token = None

    def _load_private_key(self) -> Ed25519PrivateKey:
        if not self.private_key_path:
            raise CredentialError("Signing key path is not configured", "qweather")

        try:
            pem = self._key_reader(self.private_key_path)
        except OSError as e:
            logger.error("Unable to read signing key", extra={
                "path": self.private_key_path,
                "error": str(e)
            })
            raise CredentialError(f"Unable to read signing key: {str(e)}", "qweather")

        if isinstance(pem, str):
            pem = pem.encode("utf-8")

        try:
            private_key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError) as e:
            raise CredentialError(f"Malformed signing key: {str(e)}", "qweather")

        if not isinstance(private_key, Ed25519PrivateKey):
            raise CredentialError("Signing key is not an Ed25519 private key", "qweather")

        return private_key


def verify_token(token: str, public_key_pem: str) -> Optional[Dict[str, Any]]:
    """Verify an EdDSA token and return its claims, or None when invalid."""
    try:
        return jwt.decode(token, public_key_pem, algorithms=[SIGNING_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("Token verification failed", extra={"error": str(e)})
        return None
