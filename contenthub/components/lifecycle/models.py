"""
Lifecycle component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import UUID


@dataclass(frozen=True)
class LifecycleConfig:
    """Lifecycle configuration from rules."""

    scheduler_actor_id: str = "system"
    auto_publish_change_log: str = "Automatically published by scheduler"
    single_scheduled_version_per_asset: bool = True
    process_due_batch_size: int = 50
    version_number_attempts: int = 3


@dataclass(frozen=True)
class DueFailure:
    """A due version the periodic trigger could not move."""

    version_id: UUID
    code: str
    message: str


@dataclass(frozen=True)
class ProcessDueResult:
    """Outcome of one periodic trigger run."""

    published: tuple[UUID, ...] = ()
    expired: tuple[UUID, ...] = ()
    failures: tuple[DueFailure, ...] = field(default_factory=tuple)

    @property
    def success(self) -> bool:
        return not self.failures
