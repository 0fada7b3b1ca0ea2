"""
Sticker Packs API

Per-profile endpoints used by the sticker picker web UI and chat clients:
the pack index, the merged emote catalog, and a pass-through proxy for the
raw pack objects (manifests and images) in the bucket.
"""

import logging
import mimetypes

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from storage import PackStorage
from .index import PackIndexBuilder
from .aggregator import EmoteAggregator

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"

router = APIRouter(tags=["Sticker Packs"])


def get_storage(request: Request) -> PackStorage:
    return request.app.state.storage


def get_index_builder(request: Request) -> PackIndexBuilder:
    return request.app.state.index_builder


def get_aggregator(request: Request) -> EmoteAggregator:
    return request.app.state.aggregator


def guess_content_type(path: str) -> str:
    """Content type from the path's extension"""
    content_type, _ = mimetypes.guess_type(path)
    return content_type or DEFAULT_CONTENT_TYPE


def object_key_from_path(path: str) -> str:
    """Join the non-empty path segments into a store key"""
    return "/".join(part for part in path.split("/") if part)


@router.get("/{profile}/packs/index.json")
def pack_index(profile: str, index_builder: PackIndexBuilder = Depends(get_index_builder)):
    """
    List the sticker pack manifests for a profile.

    Returns the sorted manifest keys plus the homeserver the picker should use
    for media URLs.
    """
    return index_builder.build_index(profile).model_dump()


@router.get("/{profile}/im.ponies.user_emotes")
def user_emotes(profile: str, aggregator: EmoteAggregator = Depends(get_aggregator)):
    """
    Merged emote catalog for a profile, in im.ponies.user_emotes format.
    """
    return aggregator.aggregate(profile).model_dump()


@router.get("/{profile}/packs/{object_path:path}")
def pack_object(profile: str, object_path: str,
                storage: PackStorage = Depends(get_storage)):
    """
    Proxy a raw object from the bucket.

    The store's status code is passed through (a missing object answers 404),
    and the body is returned unmodified.
    """
    key = object_key_from_path(object_path)
    if not key:
        raise HTTPException(status_code=404, detail="No object key given")
    logger.info(f"Fetching {key} from bucket")

    obj = storage.get_object(key)
    logger.info(f"Found object {key} ({obj.status_code})")

    return Response(
        content=obj.body,
        status_code=obj.status_code,
        media_type=guess_content_type(key),
    )
