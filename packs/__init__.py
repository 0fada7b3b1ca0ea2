"""
Sticker Packs

Discovers the sticker pack manifests stored for a profile and merges them into
the emote catalog served to chat clients.
"""

from .schemas import EmoteCatalog, PackIndex, StickerManifest, ManifestParseError
from .index import PackIndexBuilder
from .aggregator import EmoteAggregator
from .api import router as packs_router

__all__ = [
    'EmoteCatalog',
    'PackIndex',
    'StickerManifest',
    'ManifestParseError',
    'PackIndexBuilder',
    'EmoteAggregator',
    'packs_router',
]
