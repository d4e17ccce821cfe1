from datetime import datetime
from typing import Any

from contenthub.domain.entities import AssetVersion, VersionStatus
from contenthub.domain.errors import InvalidTransition

# Allowed lifecycle edges. Anything not listed is rejected.
ALLOWED_TRANSITIONS: dict[VersionStatus, frozenset[VersionStatus]] = {
    VersionStatus.DRAFT: frozenset({VersionStatus.SCHEDULED, VersionStatus.PUBLISHED}),
    VersionStatus.SCHEDULED: frozenset({VersionStatus.DRAFT, VersionStatus.PUBLISHED}),
    VersionStatus.PUBLISHED: frozenset(
        {VersionStatus.EXPIRED, VersionStatus.ARCHIVED, VersionStatus.DEPRECATED}
    ),
    VersionStatus.EXPIRED: frozenset({VersionStatus.ARCHIVED}),
    VersionStatus.DEPRECATED: frozenset({VersionStatus.ARCHIVED}),
    VersionStatus.ARCHIVED: frozenset(),
}

# published -> deprecated only happens as a side effect of publishing a newer version.
INTERNAL_ONLY: frozenset[tuple[VersionStatus, VersionStatus]] = frozenset(
    {(VersionStatus.PUBLISHED, VersionStatus.DEPRECATED)}
)


def can_transition(
    current: VersionStatus,
    new: VersionStatus,
    *,
    allow_internal: bool = False,
) -> bool:
    """
    Determine if a lifecycle edge is allowed.
    Same-status transitions are always allowed (idempotent no-op).
    """
    if current == new:
        return True
    if (current, new) in INTERNAL_ONLY and not allow_internal:
        return False
    return new in ALLOWED_TRANSITIONS[current]


def transition(
    version: AssetVersion,
    new_status: VersionStatus,
    now: datetime,
    *,
    allow_internal: bool = False,
) -> AssetVersion:
    """
    Return a NEW AssetVersion with the updated status and timestamps.
    Raises InvalidTransition if the edge is not allowed.
    """
    if version.status == new_status:
        return version.model_copy()

    if not can_transition(version.status, new_status, allow_internal=allow_internal):
        raise InvalidTransition(version.status.value, new_status.value)

    updates: dict[str, Any] = {"status": new_status, "updated_at": now}

    if new_status == VersionStatus.PUBLISHED:
        updates["published_at"] = now

    if new_status == VersionStatus.DRAFT:
        # Unschedule
        updates["publish_at"] = None

    if new_status == VersionStatus.SCHEDULED and not version.publish_at:
        raise InvalidTransition(
            version.status.value,
            new_status.value,
            "Cannot transition to scheduled without publish_at date",
        )

    return version.model_copy(update=updates)
