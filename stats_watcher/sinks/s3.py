"""S3 blob storage sink."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import StorageConfig
from ..errors import SinkError

logger = logging.getLogger(__name__)


class S3BlobStorage:
    """Writes public-read JSON documents to an S3 bucket.

    Credentials come from the standard AWS environment variables or profile.
    boto3 is blocking, so each upload runs in a worker thread.
    """

    def __init__(self, config: StorageConfig, client: Any | None = None) -> None:
        self.bucket = config.bucket
        if client is None:
            client = boto3.client("s3", region_name=config.region or None)
        self._client = client

    def _put(self, body: bytes, name: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=name,
            Body=body,
            ContentType="application/json",
            ACL="public-read",
        )

    async def write_named_blob(self, payload: Any, name: str) -> None:
        body = json.dumps(payload, indent=4).encode("utf-8")
        try:
            await asyncio.to_thread(self._put, body, name)
        except (BotoCoreError, ClientError) as e:
            raise SinkError(f"Failed to write s3://{self.bucket}/{name}: {e}") from e
        logger.debug("Wrote s3://%s/%s (%d bytes)", self.bucket, name, len(body))
