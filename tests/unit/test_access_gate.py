"""
Tests for AccessGate (public / emailVerify policy and recipient verification).
"""

from __future__ import annotations

import pytest

from contenthub.components.access_gate import AccessDecision, AccessGate
from contenthub.components.share_links import CreatedShareLink, CreateShareLinkInput
from contenthub.domain.entities import AccessMode
from contenthub.domain.errors import BadRequest, NotFound, Unauthorized


@pytest.fixture
def email_link(share_service, published_asset) -> CreatedShareLink:
    asset, _ = published_asset
    return share_service.create(
        CreateShareLinkInput(
            asset_id=asset.id,
            access_mode=AccessMode.EMAIL_VERIFY,
            recipients=("Alice@Example.com", "bob@example.com"),
        ),
        actor_id="owner-1",
    )


@pytest.fixture
def public_link(share_service, published_asset) -> CreatedShareLink:
    asset, _ = published_asset
    return share_service.create(CreateShareLinkInput(asset_id=asset.id), actor_id="owner-1")


def token_for(created: CreatedShareLink, email: str) -> str:
    return next(r.verification_token for r in created.recipients if r.email == email)


class TestCheckAccess:
    """Access decisions."""

    def test_public_always_allowed(self, gate: AccessGate, public_link) -> None:
        """Public links need no email."""
        assert gate.check_access(public_link.share_link) == AccessDecision.ALLOWED

    def test_email_link_without_email(self, gate: AccessGate, email_link) -> None:
        """emailVerify links without an email require verification."""
        decision = gate.check_access(email_link.share_link)
        assert decision == AccessDecision.REQUIRES_VERIFICATION

    def test_unverified_recipient(self, gate: AccessGate, email_link) -> None:
        """A known but unverified recipient still requires verification."""
        decision = gate.check_access(email_link.share_link, "alice@example.com")
        assert decision == AccessDecision.REQUIRES_VERIFICATION

    def test_verified_recipient(self, gate: AccessGate, email_link) -> None:
        """After verification the recipient is allowed, email case ignored."""
        link = email_link.share_link
        gate.verify(link, "alice@example.com", token_for(email_link, "alice@example.com"))

        assert gate.check_access(link, " ALICE@example.com ") == AccessDecision.ALLOWED
        decision = gate.check_access(link, "bob@example.com")
        assert decision == AccessDecision.REQUIRES_VERIFICATION


class TestVerify:
    """Recipient verification."""

    def test_verify_marks_recipient(self, gate: AccessGate, email_link, clock) -> None:
        """A matching token verifies the recipient."""
        result = gate.verify(
            email_link.share_link,
            "Alice@Example.com",
            token_for(email_link, "alice@example.com"),
        )

        assert result.verified
        assert result.already_verified is False
        assert result.recipient.verified_at == clock.now_utc()

    def test_reverify_succeeds(self, gate: AccessGate, email_link, clock) -> None:
        """Verifying twice is fine and keeps the first verified_at."""
        link = email_link.share_link
        token = token_for(email_link, "bob@example.com")
        first = gate.verify(link, "bob@example.com", token)
        clock.advance(minutes=5)

        second = gate.verify(link, "bob@example.com", token)

        assert second.already_verified is True
        assert second.recipient.verified_at == first.recipient.verified_at

    def test_wrong_token(self, gate: AccessGate, email_link) -> None:
        """A mismatched token is Unauthorized."""
        with pytest.raises(Unauthorized):
            gate.verify(email_link.share_link, "alice@example.com", "not-the-token")

    def test_other_recipients_token(self, gate: AccessGate, email_link) -> None:
        """Tokens are bound to their recipient."""
        with pytest.raises(Unauthorized):
            gate.verify(
                email_link.share_link,
                "alice@example.com",
                token_for(email_link, "bob@example.com"),
            )

    def test_unknown_email(self, gate: AccessGate, email_link) -> None:
        """Emails not on the link are NotFound."""
        with pytest.raises(NotFound):
            gate.verify(email_link.share_link, "mallory@example.com", "anything")

    def test_public_link_rejected(self, gate: AccessGate, public_link) -> None:
        """Public links have nothing to verify."""
        with pytest.raises(BadRequest):
            gate.verify(public_link.share_link, "alice@example.com", "anything")
