"""Content provider storing blobs as objects in an S3 bucket.

Keys: ``<prefix>/<entity>/<version>/<entity>-<version><suffix>`` with every
segment percent-encoded, so deleting all content of an entity is a prefix delete.
"""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Final

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from flowregistry.domain.errors import ContentNotFoundError, PersistenceError

from .keys import content_segments, sanitize

if TYPE_CHECKING:
    from botocore.client import BaseClient

    from flowregistry.config import S3Config
    from flowregistry.domain.ports import ContentVersion

log = getLogger(__name__)

_MISSING_KEY_CODES: Final = frozenset({"NoSuchKey", "404", "NotFound"})
_DELETE_BATCH_SIZE: Final = 1000


def build_s3_client(config: S3Config) -> BaseClient:
    session = boto3.Session(region_name=config.region)
    return session.client(
        "s3",
        region_name=config.region,
        endpoint_url=config.endpoint_url,
        config=BotoConfig(retries={"max_attempts": 5, "mode": "standard"}),
    )


class S3ContentProvider:
    def __init__(
        self,
        client: BaseClient,
        *,
        bucket: str,
        prefix: str = "",
        suffix: str = ".bin",
    ) -> None:
        self._client = client
        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._suffix = suffix

    def object_key(self, entity_id: str, version: ContentVersion) -> str:
        return self._key("/".join(content_segments(entity_id, version, self._suffix)))

    def save_content(self, entity_id: str, version: ContentVersion, content: bytes) -> None:
        key = self.object_key(entity_id, version)
        log.debug("Saving %d bytes to s3://%s/%s", len(content), self._bucket, key)
        try:
            self._client.put_object(Bucket=self._bucket, Key=key, Body=content)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"Error saving content to S3 key {key}: {exc}") from exc

    def get_content(self, entity_id: str, version: ContentVersion) -> bytes:
        key = self.object_key(entity_id, version)
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except ClientError as exc:
            if _error_code(exc) in _MISSING_KEY_CODES:
                raise ContentNotFoundError(
                    f"No content exists for {entity_id} version {version} at S3 key {key}"
                ) from exc
            raise PersistenceError(f"Error retrieving content from S3 key {key}: {exc}") from exc
        except BotoCoreError as exc:
            raise PersistenceError(f"Error retrieving content from S3 key {key}: {exc}") from exc

    def delete_content(self, entity_id: str, version: ContentVersion) -> None:
        key = self.object_key(entity_id, version)
        log.debug("Deleting s3://%s/%s", self._bucket, key)
        try:
            self._client.delete_object(Bucket=self._bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(f"Error deleting content at S3 key {key}: {exc}") from exc

    def delete_all_content(self, entity_id: str) -> None:
        prefix = self._key(f"{sanitize(entity_id)}/")
        log.debug("Deleting all objects under s3://%s/%s", self._bucket, prefix)
        try:
            keys = self._list_keys(prefix)
            for start in range(0, len(keys), _DELETE_BATCH_SIZE):
                batch = keys[start : start + _DELETE_BATCH_SIZE]
                response = self._client.delete_objects(
                    Bucket=self._bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
                errors = response.get("Errors") or []
                if errors:
                    failed = ", ".join(error.get("Key", "?") for error in errors)
                    raise PersistenceError(f"S3 refused to delete objects: {failed}")
        except (BotoCoreError, ClientError) as exc:
            raise PersistenceError(
                f"Error deleting content under S3 prefix {prefix}: {exc}"
            ) from exc
        if not keys:
            log.warning("No content exists under S3 prefix %s", prefix)

    def _list_keys(self, prefix: str) -> list[str]:
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
            keys.extend(item["Key"] for item in page.get("Contents", []))
        return keys

    def _key(self, relative: str) -> str:
        return f"{self._prefix}/{relative}" if self._prefix else relative


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))
