"""
S3 Pack Storage

S3-compatible object store client for sticker pack JSON and images.
Buckets are opened path-style; when no credentials are configured requests are
sent unsigned so public buckets work without keys.
"""

import logging
import threading
from typing import Optional, List, Any, TYPE_CHECKING
from dataclasses import dataclass

import boto3
from botocore import UNSIGNED
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

if TYPE_CHECKING:
    from config import ServerConfig

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base exception for object store errors"""
    pass


class StoreListError(StoreError):
    """Raised when listing keys fails"""
    pass


class StoreFetchError(StoreError):
    """Raised when an object cannot be fetched"""

    def __init__(self, message: str, key: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.key = key
        # None means the request never got a response from the store
        self.status_code = status_code


def normalize_key(key: str) -> str:
    """Drop the leading '/' of a path-like key"""
    return key.lstrip("/")


@dataclass
class StoreObject:
    """An object as returned by the store, status code included"""
    status_code: int
    body: bytes
    content_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class PackStorage:
    """
    Object store gateway used by the pack index, the emote aggregator and the
    raw object proxy.

    Usage:
        storage = PackStorage.from_config(config)

        # Non-recursive listing under a prefix
        keys = storage.list_keys("/alice/", delimiter="/")

        # Fetch with the store's status code
        obj = storage.get_object("/alice/cats.json")
        if obj.ok:
            data = obj.body

    Keys and prefixes are path-like: a leading "/" is dropped, so "/alice/x.json"
    and "alice/x.json" name the same object.
    """

    def __init__(self, endpoint_url: str, bucket_name: str,
                 region: str = "auto",
                 access_key_id: Optional[str] = None,
                 secret_access_key: Optional[str] = None,
                 timeout: int = 10,
                 client: Any = None):
        self.endpoint_url = endpoint_url
        self.bucket_name = bucket_name
        self.region = region
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.timeout = timeout
        self._client = client
        self._client_lock = threading.Lock()

    @classmethod
    def from_config(cls, config: "ServerConfig") -> 'PackStorage':
        return cls(
            endpoint_url=config.s3_server,
            bucket_name=config.s3_bucket,
            region=config.s3_region,
            access_key_id=config.s3_access_key_id,
            secret_access_key=config.s3_secret_access_key,
            timeout=config.s3_timeout,
        )

    @property
    def anonymous(self) -> bool:
        return not (self.access_key_id and self.secret_access_key)

    def _get_client(self):
        """Get or create the S3 client"""
        with self._client_lock:
            if self._client is None:
                options = {
                    "s3": {"addressing_style": "path"},
                    "connect_timeout": self.timeout,
                    "read_timeout": self.timeout,
                    "retries": {"max_attempts": 2},
                }
                if self.anonymous:
                    # Public bucket: send unsigned requests
                    options["signature_version"] = UNSIGNED
                config = Config(**options)
                self._client = boto3.client(
                    's3',
                    endpoint_url=self.endpoint_url,
                    aws_access_key_id=self.access_key_id,
                    aws_secret_access_key=self.secret_access_key,
                    region_name=self.region,
                    config=config,
                )
            return self._client

    def list_keys(self, prefix: str = "", delimiter: Optional[str] = None) -> List[str]:
        """
        List object keys under a prefix.

        Pagination is followed transparently. With a delimiter, keys below the
        next delimiter (nested "folders") are grouped away and not returned.

        Args:
            prefix: Key prefix to list under
            delimiter: Grouping delimiter, e.g. "/"

        Returns:
            Keys in the order the store returned them

        Raises:
            StoreListError: if any page cannot be listed
        """
        prefix = normalize_key(prefix)
        params = {"Bucket": self.bucket_name, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter

        keys = []
        try:
            paginator = self._get_client().get_paginator("list_objects_v2")
            for page in paginator.paginate(**params):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except (ClientError, BotoCoreError) as e:
            logger.error(f"List failed for s3://{self.bucket_name}/{prefix}: {e}")
            raise StoreListError(f"Listing '{prefix}' failed: {e}") from e

        return keys

    def get_object(self, key: str) -> StoreObject:
        """
        Fetch an object.

        Errors the store itself answers with (404 NoSuchKey, 403, ...) are
        returned as a StoreObject carrying that status and an empty body, so
        callers can pass the status through.

        Raises:
            StoreFetchError: on transport failures (no status from the store)
        """
        key = normalize_key(key)
        try:
            response = self._get_client().get_object(Bucket=self.bucket_name, Key=key)
            body = response["Body"].read()
        except ClientError as e:
            status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
            if isinstance(status, int) and status >= 400:
                code = e.response.get("Error", {}).get("Code", "")
                logger.info(f"Store answered {status} ({code}) for s3://{self.bucket_name}/{key}")
                return StoreObject(status_code=status, body=b"")
            logger.error(f"Fetch failed for s3://{self.bucket_name}/{key}: {e}")
            raise StoreFetchError(f"Fetching '{key}' failed: {e}", key) from e
        except BotoCoreError as e:
            logger.error(f"Fetch failed for s3://{self.bucket_name}/{key}: {e}")
            raise StoreFetchError(f"Fetching '{key}' failed: {e}", key) from e

        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode", 200)
        return StoreObject(
            status_code=status,
            body=body,
            content_type=response.get("ContentType"),
        )
