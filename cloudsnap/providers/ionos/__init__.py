"""IONOS Cloud provider."""

from cloudsnap.providers.ionos.client import IONOS_API_BASE, IonosClient, Submitted
from cloudsnap.providers.ionos.images import select_image

__all__ = ["IONOS_API_BASE", "IonosClient", "Submitted", "select_image"]
