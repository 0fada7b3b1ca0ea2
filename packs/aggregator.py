"""
Emote Aggregator

Merges every sticker pack of a profile into a single im.ponies.user_emotes
catalog. Packs are processed in index order, so on an ID collision the sticker
from the later pack wins while keeping the position where the ID first
appeared.

A single unreadable pack fails the whole catalog; no partial catalog is
returned.
"""

import logging
from typing import Iterable

from storage import PackStorage, StoreFetchError
from .index import PackIndexBuilder
from .schemas import (
    DEFAULT_PACK_DISPLAY_NAME,
    EmoteCatalog,
    EmoteImage,
    PackMeta,
    StickerManifest,
    parse_manifest,
)

logger = logging.getLogger(__name__)


def merge_manifests(manifests: Iterable[StickerManifest],
                    display_name: str = DEFAULT_PACK_DISPLAY_NAME) -> EmoteCatalog:
    """Merge already parsed manifests, in the given order, into a catalog"""
    images = {}
    for manifest in manifests:
        for sticker in manifest.stickers:
            # dict assignment on an existing key keeps its position
            images[sticker.external_id] = EmoteImage.from_sticker(sticker)

    return EmoteCatalog(images=images, pack=PackMeta(display_name=display_name))


class EmoteAggregator:
    """Builds a fresh catalog per call; holds no state between calls"""

    def __init__(self, index_builder: PackIndexBuilder, storage: PackStorage,
                 display_name: str = DEFAULT_PACK_DISPLAY_NAME):
        self.index_builder = index_builder
        self.storage = storage
        self.display_name = display_name

    def fetch_manifest(self, key: str) -> StickerManifest:
        """
        Fetch and parse one pack manifest.

        Raises:
            StoreFetchError: transport failure or non-success store status
            ManifestParseError: body is not a valid manifest
        """
        obj = self.storage.get_object(key)
        if not obj.ok:
            raise StoreFetchError(
                f"Store answered {obj.status_code} for '{key}'", key, obj.status_code
            )
        return parse_manifest(key, obj.body)

    def _iter_manifests(self, keys):
        for key in keys:
            yield self.fetch_manifest(key)

    def aggregate(self, profile: str) -> EmoteCatalog:
        """
        Build the emote catalog for a profile.

        A profile without packs yields an empty catalog. Any listing, fetch or
        parse error aborts the whole aggregation.
        """
        keys = self.index_builder.list_packs(profile)
        if not keys:
            return EmoteCatalog(pack=PackMeta(display_name=self.display_name))

        catalog = merge_manifests(self._iter_manifests(keys), self.display_name)
        logger.info(
            f"Aggregated {len(catalog.images)} emote(s) from {len(keys)} pack(s) "
            f"for profile '{profile}'"
        )
        return catalog
