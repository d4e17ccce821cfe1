"""
Signed retrieval references for stored objects.

A reference is an HS256 JWT carrying the storage key and an expiry. The
/downloads route validates it and serves the object from the storage root.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, cast
from urllib.parse import quote

from jose import jwt

from contenthub.core.ports.storage import PresignError
from contenthub.core.ports.time import TimePort

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TYPE = "download"


class JwtPresigner:
    def __init__(self, secret_key: str, base_url: str, clock: TimePort):
        if not secret_key:
            raise ValueError("secret_key must not be empty")
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.clock = clock

    def presign_download(self, storage_key: str, ttl_seconds: int) -> str:
        if not storage_key:
            raise PresignError("storage_key must not be empty")
        if ttl_seconds <= 0:
            raise PresignError("ttl_seconds must be positive")

        now = self.clock.now_utc()
        claims = {
            "sub": storage_key,
            "typ": TOKEN_TYPE,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        }
        reference: str = jwt.encode(claims, self.secret_key, algorithm=ALGORITHM)
        return f"{self.base_url}/downloads/{quote(reference, safe='')}"

    def decode_reference(self, reference: str) -> str:
        """
        Validate a reference and return its storage key.
        Expiry is checked against the injected clock, not the wall clock.
        """
        try:
            payload = cast(
                dict[str, Any],
                jwt.decode(
                    reference,
                    self.secret_key,
                    algorithms=[ALGORITHM],
                    options={"verify_exp": False},
                ),
            )
        except jwt.JWTError as e:
            raise PresignError("Invalid download reference") from e

        if payload.get("typ") != TOKEN_TYPE or not payload.get("sub"):
            raise PresignError("Invalid download reference")

        exp = payload.get("exp")
        if not isinstance(exp, int) or exp <= int(self.clock.now_utc().timestamp()):
            logger.info("Rejected expired download reference")
            raise PresignError("Download reference has expired")

        return str(payload["sub"])
