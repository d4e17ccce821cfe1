"""
Share links component - owner-side creation, listing and revocation.
"""

from ._impl import ShareLinkService
from .models import CreatedShareLink, CreateShareLinkInput, SharingConfig

__all__ = [
    "CreateShareLinkInput",
    "CreatedShareLink",
    "ShareLinkService",
    "SharingConfig",
]
