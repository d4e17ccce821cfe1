from __future__ import annotations

from dataclasses import dataclass

from contenthub.domain.entities import ShareEvent


@dataclass(frozen=True)
class Actor:
    """Who performed an access, as seen by the HTTP edge."""

    ip_address: str | None = None
    user_agent: str | None = None
    email: str | None = None


@dataclass(frozen=True)
class RecordOutcome:
    """
    Result of a fire-and-forget record call.

    event is always populated (its id can be returned to the client);
    persisted / touched report whether the two best-effort writes landed.
    """

    event: ShareEvent
    persisted: bool
    touched: bool
