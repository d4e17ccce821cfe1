"""
Share resolver component - share token to effective version.
"""

from ._impl import ShareLinkResolver, evaluate, is_link_expired, newer_version_available
from .models import EffectiveStatus, ResolvedShare

__all__ = [
    # Service
    "ShareLinkResolver",
    # Pure functions
    "evaluate",
    "is_link_expired",
    "newer_version_available",
    # Models
    "EffectiveStatus",
    "ResolvedShare",
]
