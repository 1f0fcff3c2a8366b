"""Cloudflare R2 cache store.

Stores entries in an R2 bucket through its S3-compatible API. Credentials
are read from environment variables so they never appear in config files.
"""

import os
from contextlib import closing

import boto3
from botocore.exceptions import ClientError

from tiercache.entries import ContentWriter, capture_writer
from tiercache.keys import CacheKey
from tiercache.logging_config import get_logger
from tiercache.stores.base import EntryConsumer

logger = get_logger(__name__)

MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "404", "NotFound"})


def is_missing_object(error: ClientError) -> bool:
    """Whether a ClientError means the object does not exist."""
    code = error.response.get("Error", {}).get("Code", "")
    return str(code) in MISSING_OBJECT_CODES


class R2Store:
    """Remote cache tier backed by Cloudflare R2 (S3-compatible) storage.

    Credentials are read from environment variables at construction time:
        TIERCACHE_R2_ACCESS_KEY_ID
        TIERCACHE_R2_SECRET_ACCESS_KEY

    Attributes:
        bucket: R2 bucket name
        endpoint_url: R2 endpoint URL
        region: R2 region (typically "auto")
        prefix: Key prefix under which entries are stored
    """

    def __init__(self, bucket: str, endpoint_url: str, region: str = "auto", prefix: str = "cache"):
        """Initialize the R2 store.

        Args:
            bucket: R2 bucket name
            endpoint_url: R2 endpoint URL
            region: R2 region
            prefix: Key prefix for cache entries

        Raises:
            ValueError: If either credential environment variable is unset
        """
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region
        self.prefix = prefix.strip("/")

        access_key = os.environ.get("TIERCACHE_R2_ACCESS_KEY_ID")
        secret_key = os.environ.get("TIERCACHE_R2_SECRET_ACCESS_KEY")

        if not access_key or not secret_key:
            raise ValueError(
                "R2 credentials not set. "
                "Set TIERCACHE_R2_ACCESS_KEY_ID and TIERCACHE_R2_SECRET_ACCESS_KEY environment variables."
            )

        self._client = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    def get_object_key(self, key: CacheKey) -> str:
        """Get the S3 key for an entry.

        The entry is stored at ``{prefix}/{hash_prefix}/{hash}``.
        """
        object_key = f"{key.hash_prefix}/{key.hash_code}"
        if self.prefix:
            return f"{self.prefix}/{object_key}"
        return object_key

    def load(self, key: CacheKey, consumer: EntryConsumer) -> bool:
        """Stream an entry from R2 to *consumer*.

        Returns:
            True if the object exists, False if R2 reports it missing

        Raises:
            ClientError: For any failure other than a missing object
        """
        object_key = self.get_object_key(key)
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=object_key)
        except ClientError as e:
            if is_missing_object(e):
                return False
            raise

        with closing(response["Body"]) as body:
            consumer(body)
        return True

    def store(self, key: CacheKey, writer: ContentWriter) -> None:
        """Upload an entry to R2.

        Args:
            key: Cache key
            writer: Source of the entry's bytes
        """
        data = capture_writer(writer).data
        object_key = self.get_object_key(key)
        self._client.put_object(
            Bucket=self.bucket,
            Key=object_key,
            Body=data,
            ContentLength=len(data),
        )
        logger.debug(f"Uploaded {key} ({len(data)} bytes) to s3://{self.bucket}/{object_key}")

    def exists(self, key: CacheKey) -> bool:
        """Check whether an entry exists in R2.

        Returns:
            True if the object exists in the bucket
        """
        try:
            self._client.head_object(Bucket=self.bucket, Key=self.get_object_key(key))
            return True
        except ClientError as e:
            if is_missing_object(e):
                return False
            raise

    def close(self) -> None:
        """Close the underlying boto3 client's connections."""
        self._client.close()

    def __repr__(self) -> str:
        return f"R2Store(bucket={self.bucket!r}, prefix={self.prefix!r})"
