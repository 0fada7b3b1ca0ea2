"""
Web UI Static Server

Serves the sticker picker web UI from the mirror's current snapshot:
    /{profile}/{path}  ->  {snapshot}/web/{path}

The profile segment only scopes the page URL (the picker reads it to find its
pack index); every profile gets the same files.
"""

import mimetypes
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse

from .sync import MirrorSynchronizer


router = APIRouter(tags=["Web UI"])


def get_mirror(request: Request) -> MirrorSynchronizer:
    return request.app.state.mirror


def resolve_static_path(root: Path, file_path: str) -> Optional[Path]:
    """
    Map a request path onto a file under root.

    Returns None for missing files, directories, and paths that escape root.
    """
    root = root.resolve()
    candidate = (root / file_path).resolve()
    if not candidate.is_relative_to(root):
        return None
    if not candidate.is_file():
        return None
    return candidate


@router.get("/{profile}/{file_path:path}")
def web_file(profile: str, file_path: str,
             mirror: MirrorSynchronizer = Depends(get_mirror)):
    """Serve a file from the current web UI snapshot"""
    # Resolve against one snapshot for the whole request
    path = resolve_static_path(mirror.web_dir, file_path)
    if path is None:
        raise HTTPException(status_code=404, detail=f"File not found: {file_path}")

    media_type, _ = mimetypes.guess_type(path.name)
    return FileResponse(
        path,
        media_type=media_type or "application/octet-stream",
        headers={"Cache-Control": "public"},
    )
