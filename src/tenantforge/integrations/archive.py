"""Remote archive store for backup replication."""

import asyncio
from pathlib import Path
from typing import Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from tenantforge.core.errors import ExternalCollaboratorError


log = structlog.get_logger()


class ArchiveStore(Protocol):
    async def put(self, key: str, path: Path) -> str: ...

    async def delete(self, prefix: str) -> int: ...


class S3ArchiveStore:
    """S3-compatible object storage, driven by the sync boto3 client in a thread."""

    def __init__(self, bucket: str, prefix: str = "", region: str | None = None) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self.client = boto3.client("s3", region_name=region)

    def _key(self, key: str) -> str:
        return f"{self.prefix}/{key}" if self.prefix else key

    async def put(self, key: str, path: Path) -> str:
        """Upload a file.

        Returns:
            The object URI
        """
        full_key = self._key(key)
        try:
            await asyncio.to_thread(self.client.upload_file, str(path), self.bucket, full_key)
        except (BotoCoreError, ClientError) as exc:
            raise ExternalCollaboratorError("archive_store", str(exc)) from exc
        log.info("archive_uploaded", bucket=self.bucket, key=full_key)
        return f"s3://{self.bucket}/{full_key}"

    async def delete(self, prefix: str) -> int:
        """Delete every object under a key prefix.

        Returns:
            Number of objects deleted
        """
        return await asyncio.to_thread(self._delete_prefix, self._key(prefix))

    def _delete_prefix(self, prefix: str) -> int:
        deleted = 0
        try:
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                objects = [{"Key": item["Key"]} for item in page.get("Contents", [])]
                if objects:
                    self.client.delete_objects(Bucket=self.bucket, Delete={"Objects": objects})
                    deleted += len(objects)
        except (BotoCoreError, ClientError) as exc:
            raise ExternalCollaboratorError("archive_store", str(exc)) from exc
        return deleted
