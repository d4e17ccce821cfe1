"""
Tests for JwtPresigner (signed download references).
"""

from __future__ import annotations

from urllib.parse import unquote

import pytest
from jose import jwt

from contenthub.adapters.clock import FixedClock
from contenthub.adapters.presign import ALGORITHM, JwtPresigner
from contenthub.core.ports.storage import PresignError

SECRET = "test-secret"


@pytest.fixture
def presigner(clock: FixedClock) -> JwtPresigner:
    return JwtPresigner(SECRET, "https://files.example.com/", clock)


def reference_of(url: str) -> str:
    return unquote(url.rsplit("/", 1)[1])


class TestPresign:
    def test_url_shape(self, presigner: JwtPresigner) -> None:
        """URLs live under the base URL's /downloads path."""
        url = presigner.presign_download("reports/q1.pdf", 60)
        assert url.startswith("https://files.example.com/downloads/")

    def test_roundtrip(self, presigner: JwtPresigner) -> None:
        """A fresh reference decodes to its storage key."""
        url = presigner.presign_download("reports/q1.pdf", 60)
        assert presigner.decode_reference(reference_of(url)) == "reports/q1.pdf"

    def test_expiry_uses_injected_clock(self, presigner: JwtPresigner, clock) -> None:
        """References stop working once the clock passes exp."""
        url = presigner.presign_download("reports/q1.pdf", 60)
        clock.advance(seconds=61)

        with pytest.raises(PresignError):
            presigner.decode_reference(reference_of(url))

    def test_wrong_secret(self, presigner: JwtPresigner, clock) -> None:
        """References signed with another key are rejected."""
        other = JwtPresigner("other-secret", "https://files.example.com", clock)
        url = other.presign_download("reports/q1.pdf", 60)

        with pytest.raises(PresignError):
            presigner.decode_reference(reference_of(url))

    def test_wrong_token_type(self, presigner: JwtPresigner, clock) -> None:
        """Tokens without the download type are rejected."""
        token = jwt.encode(
            {"sub": "reports/q1.pdf", "exp": int(clock.now_utc().timestamp()) + 60},
            SECRET,
            algorithm=ALGORITHM,
        )
        with pytest.raises(PresignError):
            presigner.decode_reference(token)

    def test_garbage(self, presigner: JwtPresigner) -> None:
        """Malformed references are rejected."""
        with pytest.raises(PresignError):
            presigner.decode_reference("not-a-jwt")

    def test_invalid_arguments(self, presigner: JwtPresigner) -> None:
        """Empty keys and non-positive TTLs are refused."""
        with pytest.raises(PresignError):
            presigner.presign_download("", 60)
        with pytest.raises(PresignError):
            presigner.presign_download("reports/q1.pdf", 0)
