"""
AccessGate - access-mode policy for a resolved share link.

Invariants:
- public links are always allowed
- emailVerify links require a verified recipient row for the given email
- Token comparison is exact and constant-time; a mismatch never reveals which part differed
- Re-verifying an already verified recipient succeeds
"""

from __future__ import annotations

import hmac
import logging
from datetime import UTC, datetime

from contenthub.core.ports.stores import ShareLinkStore
from contenthub.core.ports.time import TimePort
from contenthub.domain.entities import AccessMode, ShareLink, normalize_email
from contenthub.domain.errors import BadRequest, NotFound, Unauthorized

from .models import AccessDecision, VerifyResult

logger = logging.getLogger(__name__)


class AccessGate:
    def __init__(self, links: ShareLinkStore, time_port: TimePort | None = None):
        self.links = links
        self.time_port = time_port

    def _now_utc(self) -> datetime:
        if self.time_port:
            return self.time_port.now_utc()
        return datetime.now(UTC)

    def check_access(
        self,
        share_link: ShareLink,
        recipient_email: str | None = None,
    ) -> AccessDecision:
        if share_link.access_mode == AccessMode.PUBLIC:
            return AccessDecision.ALLOWED

        if not recipient_email:
            return AccessDecision.REQUIRES_VERIFICATION

        recipient = self.links.get_recipient(share_link.id, normalize_email(recipient_email))
        if recipient is None or not recipient.verified:
            return AccessDecision.REQUIRES_VERIFICATION
        return AccessDecision.ALLOWED

    def verify(self, share_link: ShareLink, email: str, submitted_token: str) -> VerifyResult:
        if share_link.access_mode != AccessMode.EMAIL_VERIFY:
            raise BadRequest("Share link does not require email verification")

        recipient = self.links.get_recipient(share_link.id, normalize_email(email))
        if recipient is None:
            raise NotFound("Email not found for this share link")

        if not hmac.compare_digest(
            recipient.verification_token.encode(), (submitted_token or "").encode()
        ):
            logger.info("Rejected verification attempt for share link %s", share_link.id)
            raise Unauthorized("Invalid verification token")

        if recipient.verified:
            return VerifyResult(recipient=recipient, already_verified=True)

        verified = self.links.mark_recipient_verified(recipient.id, self._now_utc())
        logger.info("Recipient verified for share link %s", share_link.id)
        return VerifyResult(recipient=verified)
