"""
Public share-link endpoints (unauthenticated).

Endpoints:
- GET  /s/{token}          landing data for a share link
- POST /s/{token}/events   track view/download/verify, optionally get a download URL
- POST /s/{token}/verify   verify a recipient email for emailVerify links

Every failure is returned as {"error": {"code", "message"}}; resolution
failures collapse to 404 NOT_FOUND with a distinguishing message.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status

from contenthub.api.deps import (
    get_access_gate,
    get_event_recorder,
    get_presigner,
    get_resolver,
    get_rules,
)
from contenthub.api.schemas import (
    ErrorResponse,
    PublicAsset,
    PublicShareLink,
    PublicVersion,
    ShareLandingResponse,
    TrackEventRequest,
    TrackEventResponse,
    VerifyRequest,
    VerifyResponse,
)
from contenthub.components.access_gate import AccessDecision, AccessGate
from contenthub.components.events import Actor, EventRecorder
from contenthub.components.share_resolver import ShareLinkResolver
from contenthub.core.ports.storage import PresignPort
from contenthub.domain.entities import ShareEventType, ShareLink, normalize_email
from contenthub.domain.errors import VerificationRequired
from contenthub.rules.models import Rules

router = APIRouter()


def _actor(request: Request, email: str | None = None) -> Actor:
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else None
    if not ip and request.client:
        ip = request.client.host
    return Actor(
        ip_address=ip,
        user_agent=request.headers.get("user-agent"),
        email=normalize_email(email) if email else None,
    )


def _require_access(gate: AccessGate, share_link: ShareLink, email: str | None) -> None:
    if gate.check_access(share_link, email) != AccessDecision.ALLOWED:
        raise VerificationRequired()


@router.get(
    "/{token}",
    response_model=ShareLandingResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Not found, revoked, expired or unavailable"},
        403: {"model": ErrorResponse, "description": "Email verification required"},
    },
    summary="Resolve share link",
    description="Resolve a share token to its asset and effective version.",
)
def get_share_landing(
    token: str,
    request: Request,
    background_tasks: BackgroundTasks,
    email: str | None = Query(None, description="Verified recipient email (emailVerify links)"),
    resolver: ShareLinkResolver = Depends(get_resolver),
    gate: AccessGate = Depends(get_access_gate),
    recorder: EventRecorder = Depends(get_event_recorder),
) -> ShareLandingResponse:
    resolved = resolver.resolve(token)
    _require_access(gate, resolved.share_link, email)

    # Logged after the response is sent
    background_tasks.add_task(
        recorder.record,
        resolved.share_link,
        ShareEventType.VIEW,
        resolved.version.id,
        _actor(request, email),
    )

    return ShareLandingResponse(
        share_link=PublicShareLink.model_validate(resolved.share_link),
        asset=PublicAsset.model_validate(resolved.asset),
        version=PublicVersion.model_validate(resolved.version),
        newer_version_available=resolved.newer_version_available,
    )


@router.post(
    "/{token}/events",
    response_model=TrackEventResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Share link not resolvable"},
        403: {"model": ErrorResponse, "description": "Email verification required"},
    },
    summary="Track share event",
    description="Record a view/download/verify event. Downloads return a time-limited URL.",
)
def track_share_event(
    token: str,
    body: TrackEventRequest,
    request: Request,
    resolver: ShareLinkResolver = Depends(get_resolver),
    gate: AccessGate = Depends(get_access_gate),
    recorder: EventRecorder = Depends(get_event_recorder),
    presigner: PresignPort = Depends(get_presigner),
    rules: Rules = Depends(get_rules),
) -> TrackEventResponse:
    resolved = resolver.resolve(token)
    share_link = resolved.share_link
    _require_access(gate, share_link, body.email)

    download_url = None
    if body.event_type == ShareEventType.DOWNLOAD and share_link.allow_download:
        download_url = presigner.presign_download(
            resolved.version.storage_key, rules.sharing.download_ttl_seconds
        )

    outcome = recorder.record(
        share_link, body.event_type, resolved.version.id, _actor(request, body.email)
    )
    return TrackEventResponse(event_id=outcome.event.id, download_url=download_url)


@router.post(
    "/{token}/verify",
    response_model=VerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Link does not use email verification"},
        401: {"model": ErrorResponse, "description": "Invalid verification token"},
        404: {"model": ErrorResponse, "description": "Link or recipient not found"},
    },
    summary="Verify recipient email",
)
def verify_recipient(
    token: str,
    body: VerifyRequest,
    request: Request,
    resolver: ShareLinkResolver = Depends(get_resolver),
    gate: AccessGate = Depends(get_access_gate),
    recorder: EventRecorder = Depends(get_event_recorder),
) -> VerifyResponse:
    share_link = resolver.validate_link(token)
    gate.verify(share_link, body.email, body.verification_token)
    recorder.record(share_link, ShareEventType.VERIFY, None, _actor(request, body.email))
    return VerifyResponse(verified=True)
