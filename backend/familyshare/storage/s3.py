"""S3 storage backend.

Objects live under one flat prefix: s3://{bucket}/{prefix}{uuid}.{ext}
The original filename and upload time travel as object user metadata
(``x-amz-meta-original-name``, ``x-amz-meta-uploaded-at``).  S3 metadata
must be ASCII, so the original name is percent-encoded.
"""
import logging
from datetime import datetime
from typing import List, Optional
from urllib.parse import quote, unquote

from botocore.exceptions import BotoCoreError, ClientError

from .base import FileStore, StoredObject, UploadMetadata, pick_match

logger = logging.getLogger(__name__)

DEFAULT_REGION = "us-east-1"

_MISSING_CODES = ("NoSuchKey", "404", "NotFound")


class S3FileStore(FileStore):
    """FileStore backed by an S3 (or S3-compatible) bucket.

    Args:
        bucket:                Bucket name.
        prefix:                Key prefix all uploads live under.
        region_name:           AWS region.  Defaults to ``us-east-1``.
        endpoint_url:          Custom endpoint for S3-compatible services.
        aws_access_key_id:     AWS access key.  ``None`` → default credential chain.
        aws_secret_access_key: AWS secret access key.
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "uploads/",
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("S3 storage requires a bucket name")
        self._bucket = bucket
        self._prefix = prefix
        self._region = region_name or DEFAULT_REGION
        self._endpoint_url = endpoint_url
        self._access_key = aws_access_key_id
        self._secret_key = aws_secret_access_key
        self._client: Optional[object] = None

    @property
    def kind(self) -> str:
        return "s3"

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _get_client(self):
        """Return a cached boto3 s3 client."""
        if self._client is None:
            import boto3

            kwargs: dict = {"region_name": self._region}
            if self._endpoint_url:
                kwargs["endpoint_url"] = self._endpoint_url
            if self._access_key and self._secret_key:
                kwargs["aws_access_key_id"]     = self._access_key
                kwargs["aws_secret_access_key"] = self._secret_key

            self._client = boto3.client("s3", **kwargs)

        return self._client

    def _key(self, stored_name: str) -> str:
        return f"{self._prefix}{stored_name}"

    def _scan_names(self) -> List[tuple]:
        """Return ``(name, size, last_modified)`` for every object under the prefix."""
        paginator = self._get_client().get_paginator("list_objects_v2")
        found = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=self._prefix):
            for obj in page.get("Contents", []):
                name = obj["Key"][len(self._prefix):]
                if not name or "/" in name or name.startswith("."):
                    continue
                found.append((name, obj["Size"], obj["LastModified"]))
        return found

    # -----------------------------------------------------------------------
    # FileStore implementation
    # -----------------------------------------------------------------------

    def put(self, stored_name: str, content: bytes, metadata: UploadMetadata) -> StoredObject:
        self._get_client().put_object(
            Bucket=self._bucket,
            Key=self._key(stored_name),
            Body=content,
            ContentType=metadata.content_type,
            Metadata={
                "original-name": quote(metadata.original_name),
                "uploaded-at": metadata.uploaded_at.isoformat(),
            },
        )
        logger.info("Saved object: s3://%s/%s (%d bytes)", self._bucket, self._key(stored_name), len(content))
        return StoredObject(
            name=stored_name,
            size=len(content),
            created_at=metadata.uploaded_at,
            original_name=metadata.original_name,
            content_type=metadata.content_type,
        )

    def list(self) -> List[StoredObject]:
        try:
            scanned = self._scan_names()
        except (ClientError, BotoCoreError) as e:
            logger.warning("Cannot list s3://%s/%s: %s", self._bucket, self._prefix, e)
            return []

        client = self._get_client()
        objects = []
        for name, size, last_modified in scanned:
            try:
                head = client.head_object(Bucket=self._bucket, Key=self._key(name))
            except ClientError as e:
                logger.error("Error reading object %s: %s", name, e)
                continue

            meta = head.get("Metadata", {})
            created_at = last_modified
            if meta.get("uploaded-at"):
                try:
                    created_at = datetime.fromisoformat(meta["uploaded-at"])
                except ValueError:
                    logger.warning("Bad uploaded-at metadata on %s", name)

            original_name = meta.get("original-name")
            objects.append(StoredObject(
                name=name,
                size=size,
                created_at=created_at,
                original_name=unquote(original_name) if original_name else None,
                content_type=head.get("ContentType"),
            ))
        return objects

    def get(self, stored_name: str) -> bytes:
        try:
            response = self._get_client().get_object(Bucket=self._bucket, Key=self._key(stored_name))
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise FileNotFoundError(stored_name) from e
            raise
        return response["Body"].read()

    def delete(self, file_id: str) -> Optional[str]:
        try:
            names = [name for name, _, _ in self._scan_names()]
        except (ClientError, BotoCoreError) as e:
            raise FileNotFoundError(f"s3://{self._bucket}/{self._prefix}") from e

        match = pick_match(names, file_id)
        if match is None:
            return None

        self._get_client().delete_object(Bucket=self._bucket, Key=self._key(match))
        logger.info("Deleted object: s3://%s/%s", self._bucket, self._key(match))
        return match
