"""Shared pytest fixtures for the sticker pack server tests."""

import json
import os
import shutil
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from storage import StoreObject, StoreListError, StoreFetchError
from mirror.git import run_git


# ============================================================================
# Object Store Fixtures
# ============================================================================


class FakeStorage:
    """
    In-memory stand-in for PackStorage.

    Keys are normalised like the S3 gateway does (no leading slash). Listing
    honours the delimiter and returns keys in insertion order, not sorted.
    """

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = {}
        self.list_calls: List[tuple] = []
        self.get_calls: List[str] = []
        self.fail_list = False
        self.fail_get = set()
        for key, body in (objects or {}).items():
            self.put(key, body)

    def put(self, key: str, body):
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        self.objects[key.lstrip("/")] = body

    def list_keys(self, prefix: str = "", delimiter: Optional[str] = None) -> List[str]:
        self.list_calls.append((prefix, delimiter))
        if self.fail_list:
            raise StoreListError(f"Listing '{prefix}' failed: connection reset")
        prefix = prefix.lstrip("/")
        keys = []
        for key in self.objects:
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                continue
            keys.append(key)
        return keys

    def get_object(self, key: str) -> StoreObject:
        self.get_calls.append(key)
        key = key.lstrip("/")
        if key in self.fail_get:
            raise StoreFetchError(f"Fetching '{key}' failed: timeout", key)
        if key not in self.objects:
            return StoreObject(status_code=404, body=b"")
        return StoreObject(status_code=200, body=self.objects[key])


def make_sticker(sticker_id: str, body: str, url: Optional[str] = None,
                 w: int = 256, h: int = 256, size: int = 1000,
                 mimetype: str = "image/png") -> dict:
    return {
        "body": body,
        "url": url or f"mxc://example.org/{body}",
        "info": {"w": w, "h": h, "size": size, "mimetype": mimetype},
        "msgtype": "m.sticker",
        "net.maunium.telegram.sticker": {"id": sticker_id, "pack": {"id": "1"}},
    }


def make_manifest(*stickers: dict, title: str = "Pack") -> dict:
    return {"title": title, "stickers": list(stickers)}


@pytest.fixture
def storage() -> FakeStorage:
    return FakeStorage()


# ============================================================================
# Git Fixtures
# ============================================================================


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


class UpstreamRepo:
    """A throwaway upstream repository to clone and fetch from"""

    def __init__(self, path: Path, branch: str = "master"):
        self.path = path
        self.branch = branch
        path.mkdir(parents=True)
        run_git(["init", "--quiet"], cwd=path)
        run_git(["symbolic-ref", "HEAD", f"refs/heads/{branch}"], cwd=path)

    @property
    def url(self) -> str:
        return str(self.path)

    def _git(self, *args):
        return run_git(
            ["-c", "user.name=Test", "-c", "user.email=test@example.com",
             "-c", "commit.gpgsign=false"] + list(args),
            cwd=self.path,
        )

    def write(self, files: Dict[str, bytes]):
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            target.write_bytes(content)

    def commit(self, files: Dict[str, bytes], message: str = "update") -> str:
        self.write(files)
        self._git("add", "--all")
        self._git("commit", "--quiet", "-m", message)
        return self.head

    def commit_symlink(self, name: str, target: str, message: str = "add link") -> str:
        link = self.path / name
        link.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(target, link)
        self._git("add", "--all")
        self._git("commit", "--quiet", "-m", message)
        return self.head

    def amend(self, files: Dict[str, bytes], message: str = "rewritten") -> str:
        """Rewrite the last commit, as a force-push would"""
        self.write(files)
        self._git("add", "--all")
        self._git("commit", "--quiet", "--amend", "-m", message)
        return self.head

    @property
    def head(self) -> str:
        return run_git(["rev-parse", "HEAD"], cwd=self.path).stdout.decode().strip()


@pytest.fixture
def upstream(tmp_path) -> UpstreamRepo:
    repo = UpstreamRepo(tmp_path / "upstream")
    repo.commit({
        "web/index.html": "<html>picker v1</html>",
        "web/src/widget.js": "console.log('v1')",
        "README.md": "stickerpicker",
    }, message="initial")
    return repo
