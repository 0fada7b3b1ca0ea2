"""
Web UI Mirror Synchronizer

Keeps a local copy of the sticker picker web UI in step with its upstream git
repository while the server keeps serving from it.

Layout of the process-owned root directory:

    {root}/
        repo/                     # git clone, no working tree
        snapshots/
            {commit[:12]}-{n}/    # one fully written tree per published commit

Readers never touch the git clone. They dereference `current_dir` on every
request, which points at a complete snapshot. A refresh writes the new commit
into a fresh snapshot directory and only then swaps the pointer, so a reader
sees either the old tree or the new one, never a mix and never a partial file.
Replaced snapshots are deleted once they are older than the grace period.

Only fast-forwards are applied. A diverged upstream (force-push) is logged and
skipped; the local branch and the served tree stay exactly as they were.
"""

import time
import shutil
import logging
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Optional, List, Dict, Any
from dataclasses import dataclass
from enum import Enum

from .git import GitRepository, GitCommandError

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"
DEFAULT_WEB_SUBDIR = "web"


class SyncError(Exception):
    """Base exception for mirror synchronization errors"""
    pass


class SyncNetworkError(SyncError):
    """Clone or fetch from upstream failed (including timeouts)"""
    pass


class SyncDivergedError(SyncError):
    """Upstream history cannot be fast-forwarded onto the local branch"""

    def __init__(self, local_head: str, fetched_head: str):
        super().__init__(
            f"Upstream is not a fast-forward of the local branch "
            f"(local {local_head[:12]}, upstream {fetched_head[:12]})"
        )
        self.local_head = local_head
        self.fetched_head = fetched_head


class SyncFilesystemError(SyncError):
    """Local repository or snapshot directory could not be read or written"""
    pass


class MirrorState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    REFRESHING = "refreshing"
    CLOSED = "closed"


# =============================================================================
# MERGE ANALYSIS
# =============================================================================

class MergeKind(str, Enum):
    UP_TO_DATE = "up_to_date"
    FAST_FORWARD = "fast_forward"
    DIVERGED = "diverged"


@dataclass(frozen=True)
class MergeAnalysis:
    kind: MergeKind
    target: Optional[str] = None  # Commit to advance to, FAST_FORWARD only

    @classmethod
    def up_to_date(cls) -> 'MergeAnalysis':
        return cls(MergeKind.UP_TO_DATE)

    @classmethod
    def fast_forward(cls, target: str) -> 'MergeAnalysis':
        return cls(MergeKind.FAST_FORWARD, target)

    @classmethod
    def diverged(cls) -> 'MergeAnalysis':
        return cls(MergeKind.DIVERGED)


def classify_merge(local_head: str, fetched_head: str,
                   local_is_ancestor: bool, fetched_is_ancestor: bool) -> MergeAnalysis:
    """
    Decide how the fetched head relates to the local branch head.

    Args:
        local_head: Commit the local branch points to
        fetched_head: Commit just fetched from upstream
        local_is_ancestor: local_head is an ancestor of fetched_head
        fetched_is_ancestor: fetched_head is an ancestor of local_head
    """
    if local_head == fetched_head or fetched_is_ancestor:
        return MergeAnalysis.up_to_date()
    if local_is_ancestor:
        return MergeAnalysis.fast_forward(fetched_head)
    return MergeAnalysis.diverged()


# =============================================================================
# REFRESH RESULTS
# =============================================================================

class RefreshStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    FAST_FORWARDED = "fast_forwarded"
    DIVERGED = "diverged"
    FAILED = "failed"
    SKIPPED = "skipped"  # Another refresh was already running


@dataclass
class RefreshResult:
    status: RefreshStatus
    head: Optional[str] = None
    previous_head: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status in (RefreshStatus.UP_TO_DATE, RefreshStatus.FAST_FORWARDED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "head": self.head,
            "previous_head": self.previous_head,
            "error": str(self.error) if self.error else None,
        }


@dataclass
class Snapshot:
    """A fully written tree of one commit"""
    path: Path
    commit: str


# =============================================================================
# SYNCHRONIZER
# =============================================================================

class MirrorSynchronizer:
    """
    Owns the mirror directory.

    Usage:
        mirror = MirrorSynchronizer("https://github.com/maunium/stickerpicker")
        mirror.initialize()          # fatal on failure, call before serving

        web_root = mirror.web_dir    # dereference per request

        mirror.refresh()             # periodic; never raises
        mirror.close()               # at process exit
    """

    def __init__(self, repo_url: str, branch: str = "master",
                 root_dir: Optional[Path] = None,
                 git_timeout: Optional[float] = 120,
                 snapshot_grace: float = 600,
                 web_subdir: str = DEFAULT_WEB_SUBDIR,
                 remote: str = DEFAULT_REMOTE):
        self.repo_url = repo_url
        self.branch = branch
        self.git_timeout = git_timeout
        self.snapshot_grace = snapshot_grace
        self.web_subdir = web_subdir
        self.remote = remote

        self._root_dir = Path(root_dir) if root_dir else None
        self._repo: Optional[GitRepository] = None
        self._current: Optional[Snapshot] = None
        self._retired: List[tuple] = []  # (Snapshot, retired_at)
        self._state = MirrorState.UNINITIALIZED
        self._refresh_lock = threading.Lock()

    @property
    def local_ref(self) -> str:
        return f"refs/heads/{self.branch}"

    @property
    def state(self) -> MirrorState:
        return self._state

    @property
    def root_dir(self) -> Optional[Path]:
        return self._root_dir

    @property
    def head(self) -> Optional[str]:
        """Commit of the tree currently being served"""
        current = self._current
        return current.commit if current else None

    @property
    def current_dir(self) -> Path:
        current = self._current
        if current is None:
            raise RuntimeError("Mirror has not been initialized")
        return current.path

    @property
    def web_dir(self) -> Path:
        """Root of the served web UI"""
        return self.current_dir / self.web_subdir

    @property
    def retired_snapshots(self) -> List[Path]:
        return [snapshot.path for snapshot, _ in self._retired]

    @property
    def _snapshots_dir(self) -> Path:
        return self._root_dir / "snapshots"

    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------

    def initialize(self) -> None:
        """
        Clone upstream and publish the first snapshot.

        Raises:
            SyncNetworkError: the clone failed
            SyncFilesystemError: the snapshot could not be written
        """
        if self._state != MirrorState.UNINITIALIZED:
            raise RuntimeError(f"Mirror already initialized (state: {self._state.value})")

        if self._root_dir is None:
            self._root_dir = Path(tempfile.mkdtemp(prefix="stickerpicker-"))
        else:
            self._root_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Cloning repository {self.repo_url}")
        try:
            self._repo = GitRepository.clone(
                self.repo_url,
                self._root_dir / "repo",
                branch=self.branch,
                timeout=self.git_timeout,
            )
        except GitCommandError as e:
            raise SyncNetworkError(f"Failed to clone {self.repo_url}: {e}") from e
        except OSError as e:
            raise SyncFilesystemError(f"Failed to clone {self.repo_url}: {e}") from e

        try:
            head = self._repo.rev_parse(self.local_ref)
        except GitCommandError as e:
            raise SyncFilesystemError(f"Branch '{self.branch}' missing after clone: {e}") from e

        self._current = self._materialize(head)
        self._state = MirrorState.READY
        logger.info(f"Mirror ready at {head[:12]} ({self._current.path})")

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    def analyze(self, local_head: str, fetched_head: str) -> MergeAnalysis:
        """Run the ancestry checks and classify the fetched head"""
        if local_head == fetched_head:
            return MergeAnalysis.up_to_date()
        return classify_merge(
            local_head,
            fetched_head,
            local_is_ancestor=self._repo.is_ancestor(local_head, fetched_head),
            fetched_is_ancestor=self._repo.is_ancestor(fetched_head, local_head),
        )

    def refresh(self) -> RefreshResult:
        """
        Fast-forward the mirror to upstream if possible.

        Never raises: every failure is logged and reported in the result, and
        the previously published snapshot stays current.
        """
        if not self._refresh_lock.acquire(blocking=False):
            logger.info("Refresh already in progress, skipping")
            return RefreshResult(RefreshStatus.SKIPPED, head=self.head, previous_head=self.head)

        try:
            if self._state != MirrorState.READY:
                logger.warning(f"Cannot refresh mirror in state '{self._state.value}'")
                return RefreshResult(RefreshStatus.SKIPPED, head=self.head, previous_head=self.head)

            self._state = MirrorState.REFRESHING
            previous = self.head
            logger.info("Updating repository")
            try:
                status = self._refresh()
                result = RefreshResult(status, head=self.head, previous_head=previous)
            except SyncDivergedError as e:
                logger.error(f"Error pulling repository: {e}")
                result = RefreshResult(RefreshStatus.DIVERGED, head=self.head,
                                       previous_head=previous, error=e)
            except SyncError as e:
                logger.error(f"Error pulling repository: {e}")
                result = RefreshResult(RefreshStatus.FAILED, head=self.head,
                                       previous_head=previous, error=e)
            except Exception as e:
                logger.exception(f"Unexpected error pulling repository: {e}")
                result = RefreshResult(RefreshStatus.FAILED, head=self.head,
                                       previous_head=previous, error=e)
            finally:
                if self._state == MirrorState.REFRESHING:
                    self._state = MirrorState.READY

            self.reclaim_snapshots()
            return result
        finally:
            self._refresh_lock.release()

    def _refresh(self) -> RefreshStatus:
        try:
            self._repo.set_remote_url(self.remote, self.repo_url)
        except GitCommandError as e:
            raise SyncFilesystemError(f"Failed to set remote URL: {e}") from e

        try:
            self._repo.fetch(self.remote, self.branch)
        except GitCommandError as e:
            raise SyncNetworkError(f"Failed to fetch {self.remote}/{self.branch}: {e}") from e

        try:
            local_head = self._repo.rev_parse(self.local_ref)
            fetched_head = self._repo.rev_parse("FETCH_HEAD")
            analysis = self.analyze(local_head, fetched_head)
        except GitCommandError as e:
            raise SyncFilesystemError(f"Merge analysis failed: {e}") from e

        if analysis.kind == MergeKind.UP_TO_DATE:
            logger.debug(f"Mirror up to date at {local_head[:12]}")
            return RefreshStatus.UP_TO_DATE

        if analysis.kind == MergeKind.DIVERGED:
            raise SyncDivergedError(local_head, fetched_head)

        self._fast_forward(local_head, analysis.target)
        logger.info(f"Fast-forwarded mirror {local_head[:12]} -> {analysis.target[:12]}")
        return RefreshStatus.FAST_FORWARDED

    def _fast_forward(self, old_head: str, target: str) -> None:
        snapshot = self._materialize(target)
        try:
            self._repo.update_ref(self.local_ref, target, old_head, message="Fast-Forward")
        except GitCommandError as e:
            self._discard(snapshot.path)
            raise SyncFilesystemError(f"Failed to advance {self.local_ref}: {e}") from e

        previous = self._current
        # Single reference assignment; readers pick up the new tree on their next lookup
        self._current = snapshot
        if previous is not None:
            self._retired.append((previous, time.monotonic()))

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def _materialize(self, commit: str) -> Snapshot:
        """Write a commit's tree into a new snapshot directory"""
        path = self._snapshots_dir / f"{commit[:12]}-{uuid.uuid4().hex[:8]}"
        try:
            self._snapshots_dir.mkdir(parents=True, exist_ok=True)
            self._repo.export(commit, path)
        except Exception as e:
            self._discard(path)
            raise SyncFilesystemError(f"Failed to write snapshot of {commit[:12]}: {e}") from e

        if not (path / self.web_subdir).is_dir():
            logger.warning(f"Snapshot {path.name} has no '{self.web_subdir}' directory")
        return Snapshot(path=path, commit=commit)

    def _discard(self, path: Path) -> None:
        shutil.rmtree(path, ignore_errors=True)

    def reclaim_snapshots(self, now: Optional[float] = None) -> int:
        """
        Delete retired snapshots older than the grace period.

        Returns:
            Number of snapshots deleted
        """
        now = time.monotonic() if now is None else now
        kept = []
        deleted = 0
        for snapshot, retired_at in self._retired:
            if now - retired_at < self.snapshot_grace:
                kept.append((snapshot, retired_at))
                continue
            try:
                shutil.rmtree(snapshot.path)
                deleted += 1
            except FileNotFoundError:
                deleted += 1
            except OSError as e:
                logger.warning(f"Could not remove snapshot {snapshot.path}: {e}")
                kept.append((snapshot, retired_at))
        self._retired = kept
        return deleted

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Remove the mirror directory. The mirror cannot be used afterwards."""
        with self._refresh_lock:
            self._state = MirrorState.CLOSED
            self._current = None
            self._retired = []
            if self._root_dir is not None and self._root_dir.exists():
                shutil.rmtree(self._root_dir, ignore_errors=True)
                logger.info(f"Removed mirror directory {self._root_dir}")
