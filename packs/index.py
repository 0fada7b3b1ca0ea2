"""
Pack Index Builder

Finds the sticker pack manifests stored for a profile.
"""

import logging
from typing import List

from storage import PackStorage
from .schemas import PackIndex

logger = logging.getLogger(__name__)

MANIFEST_SUFFIX = ".json"
KEY_DELIMITER = "/"


def profile_prefix(profile: str) -> str:
    """Store prefix holding a profile's packs"""
    return f"/{profile}/"


class PackIndexBuilder:
    """
    Lists manifest keys for a profile.

    The profile is used as an opaque path segment; callers must reject empty
    or '/'-bearing profiles before calling in.
    """

    def __init__(self, storage: PackStorage, homeserver_url: str = ""):
        self.storage = storage
        self.homeserver_url = homeserver_url

    def list_packs(self, profile: str) -> List[str]:
        """
        Sorted manifest keys directly under the profile's prefix.

        Raises:
            StoreListError: listing failures are passed through unchanged
        """
        keys = self.storage.list_keys(profile_prefix(profile), delimiter=KEY_DELIMITER)
        packs = sorted(key for key in keys if key.endswith(MANIFEST_SUFFIX))
        logger.debug(f"Found {len(packs)} pack(s) for profile '{profile}'")
        return packs

    def build_index(self, profile: str) -> PackIndex:
        return PackIndex(
            packs=self.list_packs(profile),
            homeserver_url=self.homeserver_url,
        )
