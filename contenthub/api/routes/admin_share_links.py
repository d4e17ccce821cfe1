"""
Admin share link routes.

Owner-side share link management and access event reads.
Verification tokens are only returned to the owner at creation time and
through the recipients listing.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from contenthub.api.deps import (
    get_actor_id,
    get_event_recorder,
    get_share_link_service,
)
from contenthub.api.schemas import (
    ErrorResponse,
    ShareEventResponse,
    ShareLinkCreatedResponse,
    ShareLinkCreateRequest,
    ShareLinkResponse,
    ShareRecipientResponse,
)
from contenthub.components.events import EventRecorder
from contenthub.components.share_links import CreateShareLinkInput, ShareLinkService

router = APIRouter()


@router.post(
    "",
    response_model=ShareLinkCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid link options"},
        404: {"model": ErrorResponse, "description": "Asset or version not found"},
    },
    summary="Create share link",
    description="Omit version_id for a canonical link that follows the current published version.",
)
def create_share_link(
    body: ShareLinkCreateRequest,
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
) -> ShareLinkCreatedResponse:
    created = service.create(
        CreateShareLinkInput(
            asset_id=body.asset_id,
            version_id=body.version_id,
            expires_at=body.expires_at,
            expire_with_asset=body.expire_with_asset,
            access_mode=body.access_mode,
            allow_download=body.allow_download,
            recipients=tuple(body.recipients),
        ),
        actor_id=actor_id,
    )
    return ShareLinkCreatedResponse(
        share_link=ShareLinkResponse.model_validate(created.share_link),
        recipients=[ShareRecipientResponse.model_validate(r) for r in created.recipients],
    )


@router.get("", response_model=list[ShareLinkResponse])
def list_share_links(
    asset_id: UUID = Query(..., description="Asset whose links to list"),
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
) -> list[ShareLinkResponse]:
    return [ShareLinkResponse.model_validate(link) for link in service.list_for_asset(asset_id)]


@router.get(
    "/{link_id}",
    response_model=ShareLinkResponse,
    responses={404: {"model": ErrorResponse, "description": "Share link not found"}},
)
def get_share_link(
    link_id: UUID,
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
) -> ShareLinkResponse:
    return ShareLinkResponse.model_validate(service.get(link_id))


@router.post(
    "/{link_id}/revoke",
    response_model=ShareLinkResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Share link not found"},
        409: {"model": ErrorResponse, "description": "Link changed concurrently"},
    },
    summary="Revoke share link",
)
def revoke_share_link(
    link_id: UUID,
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
) -> ShareLinkResponse:
    return ShareLinkResponse.model_validate(service.revoke(link_id))


@router.get("/{link_id}/recipients", response_model=list[ShareRecipientResponse])
def list_recipients(
    link_id: UUID,
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
) -> list[ShareRecipientResponse]:
    return [ShareRecipientResponse.model_validate(r) for r in service.list_recipients(link_id)]


@router.get("/{link_id}/events", response_model=list[ShareEventResponse])
def list_share_events(
    link_id: UUID,
    since: datetime | None = Query(None, description="Only events at or after this time"),
    limit: int = Query(100, ge=1, le=1000),
    actor_id: str = Depends(get_actor_id),
    service: ShareLinkService = Depends(get_share_link_service),
    recorder: EventRecorder = Depends(get_event_recorder),
) -> list[ShareEventResponse]:
    service.get(link_id)
    events = recorder.list_events(link_id, since=since, limit=limit)
    return [ShareEventResponse.model_validate(e) for e in events]
