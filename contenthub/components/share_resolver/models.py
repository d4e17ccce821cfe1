"""
Share resolver models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from contenthub.domain.entities import Asset, AssetVersion, ShareLink


class EffectiveStatus(str, Enum):
    """Status of a share link as of a given instant."""

    ACTIVE = "active"
    REVOKED = "revoked"
    EXPIRED = "expired"
    # expires_at has passed but the stored status is still active
    LAPSED = "lapsed"


@dataclass(frozen=True)
class ResolvedShare:
    """Successful resolution of a share token."""

    share_link: ShareLink
    version: AssetVersion
    asset: Asset
    newer_version_available: bool = False
