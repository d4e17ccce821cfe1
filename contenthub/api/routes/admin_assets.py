"""
Admin asset and version lifecycle routes.

All endpoints require the X-Actor-Id header supplied by the upstream
identity layer. Lifecycle errors are rendered by the app-level handlers.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status

from contenthub.api.deps import get_actor_id, get_lifecycle_manager, get_presigner, get_rules
from contenthub.api.schemas import (
    AssetCreateRequest,
    AssetResponse,
    DownloadUrlResponse,
    ErrorResponse,
    ExpireAtRequest,
    ProcessDueFailure,
    ProcessDueResponse,
    PublishRequest,
    ScheduleRequest,
    VersionCreateRequest,
    VersionResponse,
)
from contenthub.components.lifecycle import LifecycleManager
from contenthub.core.ports.storage import PresignPort
from contenthub.domain.entities import AssetVersion
from contenthub.rules.models import Rules

router = APIRouter()

_LIFECYCLE_ERRORS: dict[int | str, dict[str, object]] = {
    400: {"model": ErrorResponse, "description": "Invalid request"},
    404: {"model": ErrorResponse, "description": "Asset or version not found"},
    409: {"model": ErrorResponse, "description": "Invalid transition or concurrent change"},
}


def _version_response(version: AssetVersion) -> VersionResponse:
    return VersionResponse.model_validate(version)


# --- Assets ---


@router.post(
    "/assets",
    response_model=AssetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create asset",
)
def create_asset(
    body: AssetCreateRequest,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AssetResponse:
    asset = manager.create_asset(body.title, owner_id=actor_id, source_type=body.source_type)
    return AssetResponse.model_validate(asset)


@router.get("/assets/{asset_id}", response_model=AssetResponse, responses=_LIFECYCLE_ERRORS)
def get_asset(
    asset_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AssetResponse:
    return AssetResponse.model_validate(manager.get_asset(asset_id))


@router.delete("/assets/{asset_id}", response_model=AssetResponse, responses=_LIFECYCLE_ERRORS)
def delete_asset(
    asset_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> AssetResponse:
    """Soft-delete. Share links to the asset stop resolving."""
    return AssetResponse.model_validate(manager.delete_asset(asset_id))


# --- Versions ---


@router.post(
    "/assets/{asset_id}/versions",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_LIFECYCLE_ERRORS,
    summary="Create draft version",
)
def create_version(
    asset_id: UUID,
    body: VersionCreateRequest,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    version = manager.create_draft(
        asset_id,
        body.storage_key,
        actor_id=actor_id,
        change_log=body.change_log,
        expire_at=body.expire_at,
    )
    return _version_response(version)


@router.get(
    "/assets/{asset_id}/versions",
    response_model=list[VersionResponse],
    responses=_LIFECYCLE_ERRORS,
)
def list_versions(
    asset_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> list[VersionResponse]:
    return [_version_response(v) for v in manager.list_versions(asset_id)]


@router.get("/versions/{version_id}", response_model=VersionResponse, responses=_LIFECYCLE_ERRORS)
def get_version(
    version_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.get_version(version_id))


@router.post(
    "/versions/{version_id}/publish",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
    summary="Publish now",
    description="Publish immediately. The prior published version becomes deprecated.",
)
def publish_version(
    version_id: UUID,
    body: PublishRequest,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.publish_now(version_id, body.change_log, actor_id=actor_id))


@router.post(
    "/versions/{version_id}/schedule",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
    summary="Schedule or reschedule",
)
def schedule_version(
    version_id: UUID,
    body: ScheduleRequest,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.schedule(version_id, body.publish_at, actor_id=actor_id))


@router.post(
    "/versions/{version_id}/unschedule",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
)
def unschedule_version(
    version_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.unschedule(version_id))


@router.post(
    "/versions/{version_id}/expire",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
)
def expire_version(
    version_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.expire(version_id))


@router.patch(
    "/versions/{version_id}/expire-at",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
    summary="Set or clear expire_at",
)
def set_version_expire_at(
    version_id: UUID,
    body: ExpireAtRequest,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.set_expire_at(version_id, body.expire_at))


@router.get(
    "/versions/{version_id}/download-url",
    response_model=DownloadUrlResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Version not downloadable by this actor"},
        404: {"model": ErrorResponse, "description": "Version or asset not found"},
    },
    summary="Direct download URL",
    description="Signed URL for one version, including deprecated ones.",
)
def get_version_download_url(
    version_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
    presigner: PresignPort = Depends(get_presigner),
    rules: Rules = Depends(get_rules),
) -> DownloadUrlResponse:
    version = manager.downloadable_version(version_id, actor_id)
    ttl = rules.sharing.download_ttl_seconds
    return DownloadUrlResponse(
        version_id=version.id,
        download_url=presigner.presign_download(version.storage_key, ttl),
        expires_in=ttl,
    )


@router.post(
    "/versions/{version_id}/archive",
    response_model=VersionResponse,
    responses=_LIFECYCLE_ERRORS,
)
def archive_version(
    version_id: UUID,
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> VersionResponse:
    return _version_response(manager.archive(version_id))


# --- Periodic trigger ---


@router.post(
    "/lifecycle/process-due",
    response_model=ProcessDueResponse,
    summary="Run the periodic trigger",
    description="Publish due scheduled versions and expire due published versions.",
)
def process_due(
    actor_id: str = Depends(get_actor_id),
    manager: LifecycleManager = Depends(get_lifecycle_manager),
) -> ProcessDueResponse:
    result = manager.process_due()
    return ProcessDueResponse(
        published=list(result.published),
        expired=list(result.expired),
        failures=[
            ProcessDueFailure(version_id=f.version_id, code=f.code, message=f.message)
            for f in result.failures
        ],
    )
