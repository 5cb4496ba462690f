"""Source image resolution."""

from __future__ import annotations

from collections.abc import Iterable

from .types import Image


def _catalog_disk_type(disk_type: str) -> str:
    # the public catalog only lists HDD images; SSD volumes are created from them
    return "HDD" if disk_type == "SSD" else disk_type


def select_image(
    images: Iterable[Image],
    name: str,
    *,
    disk_type: str,
    location: str,
) -> str:
    """Return the id of the first public image matching the request.

    Matching is first-match in catalog order: the image name must contain
    ``name`` (case-insensitive) and its type and location must equal the
    requested disk type and location exactly.

    Returns:
        The image id, or an empty string when nothing matches.
    """
    wanted_type = _catalog_disk_type(disk_type)
    needle = name.lower()

    for image in images:
        props = image.get("properties", {})
        image_name = props.get("name") or ""
        if not image_name or needle not in image_name.lower():
            continue
        if props.get("imageType") != wanted_type:
            continue
        if props.get("location") != location:
            continue
        if not props.get("public", False):
            continue
        return image["id"]

    return ""
