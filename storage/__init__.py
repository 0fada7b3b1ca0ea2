"""
Object store access for sticker pack manifests and media.
"""

from .s3 import (
    PackStorage,
    StoreObject,
    StoreError,
    StoreListError,
    StoreFetchError,
)

__all__ = [
    'PackStorage',
    'StoreObject',
    'StoreError',
    'StoreListError',
    'StoreFetchError',
]
