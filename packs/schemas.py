"""
Sticker Pack Schema Definitions

Input side: the sticker pack manifests stored in the bucket, one JSON file per
pack, as written by the maunium sticker pack importer:

    {
        "title": "...",
        "stickers": [
            {
                "body": "smile",
                "url": "mxc://example.org/abc",
                "info": {"w": 256, "h": 256, "size": 1234, "mimetype": "image/png"},
                "net.maunium.telegram.sticker": {"id": "123456", ...}
            }
        ]
    }

Output side: the im.ponies.user_emotes catalog served to clients, and the
pack index served to the picker web UI.
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationError


DEFAULT_PACK_DISPLAY_NAME = "Sticker Pack"
STICKER_USAGE = "sticker"


class ManifestParseError(Exception):
    """Raised when a pack manifest is not valid JSON or does not match the schema"""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Invalid sticker pack manifest '{key}': {reason}")
        self.key = key
        self.reason = reason


# =============================================================================
# MANIFEST (INPUT)
# =============================================================================

class ImageInfo(BaseModel):
    """Image metadata, passed through to clients as-is"""
    model_config = ConfigDict(extra="ignore")

    w: int = Field(ge=0)
    h: int = Field(ge=0)
    size: int = Field(ge=0)
    mimetype: str


class TelegramSticker(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str


class Sticker(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    body: str
    url: str
    info: ImageInfo
    telegram_sticker: TelegramSticker = Field(alias="net.maunium.telegram.sticker")

    @property
    def external_id(self) -> str:
        """Merge key across packs"""
        return self.telegram_sticker.id


class StickerManifest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    stickers: List[Sticker]


def parse_manifest(key: str, data: bytes) -> StickerManifest:
    """
    Parse one manifest object.

    Args:
        key: Store key the bytes came from (used in error messages)
        data: Raw object body

    Raises:
        ManifestParseError: on invalid JSON or schema mismatch
    """
    try:
        return StickerManifest.model_validate_json(data)
    except ValidationError as e:
        raise ManifestParseError(key, str(e)) from e
    except ValueError as e:
        # model_validate_json raises ValidationError for bad JSON too, but
        # undecodable bytes can surface as a plain ValueError
        raise ManifestParseError(key, str(e)) from e


# =============================================================================
# RESPONSES (OUTPUT)
# =============================================================================

class EmoteImage(BaseModel):
    body: str
    info: ImageInfo
    url: str
    usage: List[str] = Field(default_factory=lambda: [STICKER_USAGE])

    @classmethod
    def from_sticker(cls, sticker: Sticker) -> 'EmoteImage':
        return cls(
            body=sticker.body,
            info=sticker.info,
            url=sticker.url,
            usage=[STICKER_USAGE],
        )


class PackMeta(BaseModel):
    display_name: str = DEFAULT_PACK_DISPLAY_NAME


class EmoteCatalog(BaseModel):
    """
    Merged emotes for one profile.

    `images` keeps first-seen order: a sticker seen again in a later pack
    replaces the stored value without moving it.
    """
    images: Dict[str, EmoteImage] = Field(default_factory=dict)
    pack: PackMeta = Field(default_factory=PackMeta)


class PackIndex(BaseModel):
    """Manifest listing consumed by the sticker picker web UI"""
    packs: List[str]
    homeserver_url: str
