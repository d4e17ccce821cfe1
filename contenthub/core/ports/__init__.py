# contenthub ports (Protocol interfaces)
# Abstract interfaces for adapters; no implementations here

from contenthub.core.ports.storage import PresignError, PresignPort
from contenthub.core.ports.stores import ShareLinkStore, VersionStore
from contenthub.core.ports.time import TimePort

__all__ = [
    "PresignError",
    "PresignPort",
    "ShareLinkStore",
    "TimePort",
    "VersionStore",
]
