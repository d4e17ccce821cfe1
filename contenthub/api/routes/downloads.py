"""
Signed download serving.

GET /downloads/{reference} validates a signed reference and streams the
referenced object from the storage root as an attachment.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import FileResponse

from contenthub.adapters.presign import JwtPresigner
from contenthub.api.deps import Settings, get_jwt_presigner, get_settings
from contenthub.core.ports.storage import PresignError

logger = logging.getLogger(__name__)

router = APIRouter()


def _object_path(storage_root: Path, storage_key: str) -> Path | None:
    """Map a storage key to a file under the storage root, or None if it escapes it."""
    root = storage_root.resolve()
    candidate = (root / storage_key).resolve()
    if candidate == root or root not in candidate.parents:
        return None
    return candidate


@router.get("/{reference}", summary="Download a stored object by signed reference")
def download_object(
    reference: str,
    presigner: JwtPresigner = Depends(get_jwt_presigner),
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    try:
        storage_key = presigner.decode_reference(reference)
    except PresignError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e)) from e

    path = _object_path(settings.storage_dir, storage_key)
    if path is None:
        logger.warning("Rejected storage key outside storage root: %s", storage_key)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid storage key")

    if not path.is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Object not found")

    return FileResponse(
        path,
        filename=path.name,
        content_disposition_type="attachment",
        headers={"Cache-Control": "private, no-store"},
    )
