from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from contenthub.domain.entities import ShareRecipient


class AccessDecision(str, Enum):
    ALLOWED = "allowed"
    REQUIRES_VERIFICATION = "requires_verification"


@dataclass(frozen=True)
class VerifyResult:
    """Successful verification. already_verified is True on repeat calls."""

    recipient: ShareRecipient
    already_verified: bool = False

    @property
    def verified(self) -> bool:
        return self.recipient.verified
