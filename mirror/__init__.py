"""
Web UI Mirror

Keeps the sticker picker web UI cloned from upstream and serves it.
"""

from .git import GitRepository, GitCommandError
from .sync import (
    MirrorSynchronizer,
    MirrorState,
    MergeAnalysis,
    MergeKind,
    RefreshResult,
    RefreshStatus,
    SyncError,
    SyncNetworkError,
    SyncDivergedError,
    SyncFilesystemError,
    classify_merge,
)
from .scheduler import RefreshScheduler
from .static import router as static_router

__all__ = [
    'GitRepository',
    'GitCommandError',
    'MirrorSynchronizer',
    'MirrorState',
    'MergeAnalysis',
    'MergeKind',
    'RefreshResult',
    'RefreshStatus',
    'SyncError',
    'SyncNetworkError',
    'SyncDivergedError',
    'SyncFilesystemError',
    'classify_merge',
    'RefreshScheduler',
    'static_router',
]
