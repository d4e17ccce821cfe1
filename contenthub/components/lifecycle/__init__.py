"""
Lifecycle component - AssetVersion state machine and publication.

Invariants:
- At most one version per asset is published and pointed to by the asset
- version_number strictly increases per asset and is never reused
- expired and archived are terminal (except expired -> archived)
"""

from ._impl import LifecycleManager
from .models import DueFailure, LifecycleConfig, ProcessDueResult

__all__ = [
    "DueFailure",
    "LifecycleConfig",
    "LifecycleManager",
    "ProcessDueResult",
]
