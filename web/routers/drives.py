"""Drive discovery endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi import status as http_status

from imageflasher.drives.device import SourceImage
from imageflasher.flash.controller import FlashController
from web.deps import get_controller

router = APIRouter()


@router.get("")
def list_drives_endpoint(
    image: str | None = Query(None, description="Evaluate statuses for this image"),
    controller: FlashController = Depends(get_controller),
) -> list[dict[str, Any]]:
    """Rescan drives and list them with their risk statuses.

    The scan replaces the controller's available-drives snapshot, which is
    what a subsequent selection is resolved against.

    Args:
        image: Optional image path used for size-dependent statuses.
        controller: Flash controller.

    Returns:
        List of drives.

    Raises:
        HTTPException: If the image file does not exist.
    """
    source: SourceImage | None = None
    if image:
        try:
            source = SourceImage.from_path(image)
        except OSError:
            raise HTTPException(
                status_code=http_status.HTTP_404_NOT_FOUND,
                detail={
                    "code": "IMAGE_NOT_FOUND",
                    "message": f"Image file not found: {image}",
                },
            ) from None

    drives = controller.selection.available.refresh()
    return [
        {
            "device": d.device,
            "description": d.description,
            "display_name": d.display_name,
            "size_bytes": d.size_bytes,
            "is_system": d.is_system,
            "is_read_only": d.is_read_only,
            "mount_points": list(d.mount_points),
            "statuses": sorted(s.value for s in controller.oracle(d, source)),
        }
        for d in drives
    ]
