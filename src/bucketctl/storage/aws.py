"""S3-compatible object store backed by aiobotocore.

Works against AWS S3 and any endpoint that speaks the same API (MinIO,
Ceph RGW, hosted S3-compatible services). Custom endpoints use path-style
addressing.

Uploads at or below the part size go out as a single ``put_object`` with
a SHA-256 checksum. Larger files use a multipart upload with a bounded
number of concurrent part uploads; a failed multipart upload is aborted
so no orphaned parts are left behind.
"""

import asyncio
import base64
import hashlib
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from aiobotocore.config import AioConfig
from aiobotocore.session import AioSession
from botocore.exceptions import BotoCoreError, ClientError

from bucketctl.errors import ConfigurationInvalid, StoreError
from bucketctl.models import ListPage, ObjectEntry
from bucketctl.storage.files import atomic_output, read_chunk

logger = logging.getLogger(__name__)

# Streaming chunk size for downloads: 64 KB
_CHUNK_SIZE = 64 * 1024

# Multipart part size (S3 minimum for all but the last part)
PART_SIZE = 5 * 1024 * 1024

# Concurrent part uploads per object
MAX_CONCURRENCY = 5

# S3 accepts part numbers 1..10000
MAX_PARTS = 10000


def multipart_part_size(size: int, part_size: int) -> int:
    """Return the part size for an object of ``size`` bytes.

    ``part_size`` is used unless the object would need more than
    ``MAX_PARTS`` parts, in which case parts grow to fit.
    """
    return max(part_size, (size + MAX_PARTS - 1) // MAX_PARTS)


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Re-raise botocore failures as StoreError."""
    try:
        yield
    except ClientError as e:
        error = e.response.get("Error", {})
        code = error.get("Code", "")
        message = error.get("Message", "") or str(e)
        raise StoreError(f"{action}: {code} {message}".strip(), provider_code=code) from e
    except BotoCoreError as e:
        raise StoreError(f"{action}: {e}") from e


class S3ObjectStore:
    """Object store that talks to an S3-compatible HTTP endpoint.

    Attributes:
        region: Region used for request signing.
        endpoint_url: Custom endpoint URL ("" for AWS).
        use_path_style: Address buckets as ``endpoint/bucket`` instead of
            virtual-host style.
        part_size: Multipart part size in bytes.
        max_concurrency: Maximum concurrent part uploads per object.
    """

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str = "",
        use_path_style: bool = False,
        access_key_id: str = "",
        secret_access_key: str = "",
        part_size: int = PART_SIZE,
        max_concurrency: int = MAX_CONCURRENCY,
    ) -> None:
        self.region = region
        self.endpoint_url = endpoint_url
        self.use_path_style = use_path_style
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.part_size = part_size
        self.max_concurrency = max_concurrency
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def init(self) -> None:
        """Create the aiobotocore S3 client.

        Raises:
            ConfigurationInvalid: If the endpoint URL is malformed.
            StoreError: If botocore cannot build the client.
        """
        client_kwargs: dict = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url

        # Many S3-compatible services reject the newer default checksum headers
        config_kwargs: dict = {
            "request_checksum_calculation": "when_required",
            "response_checksum_validation": "when_required",
        }
        if self.use_path_style:
            config_kwargs["s3"] = {"addressing_style": "path"}
        client_kwargs["config"] = AioConfig(**config_kwargs)

        # Use explicit credentials if provided, otherwise fall back to chain
        if self.access_key_id and self.secret_access_key:
            self._session.set_credentials(self.access_key_id, self.secret_access_key)
        ctx = self._session.create_client("s3", **client_kwargs)
        try:
            with _translate_errors("create S3 client"):
                self._client = await ctx.__aenter__()
        except ValueError as exc:
            # botocore rejects malformed endpoint URLs with a plain ValueError
            raise ConfigurationInvalid(f"invalid endpoint_url '{self.endpoint_url}': {exc}") from exc
        self._client_ctx = ctx

        logger.info(
            "S3 client initialized: region=%s endpoint='%s' path_style=%s",
            self.region,
            self.endpoint_url,
            self.use_path_style,
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def list_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        """Fetch one ``list_objects_v2`` page."""
        kwargs: dict = {"Bucket": bucket, "Prefix": prefix}
        if continuation_token:
            kwargs["ContinuationToken"] = continuation_token

        with _translate_errors(f"list objects in {bucket}/{prefix}"):
            resp = await self._client.list_objects_v2(**kwargs)

        objects = [
            ObjectEntry(key=obj["Key"], size=obj.get("Size", 0), last_modified=obj["LastModified"])
            for obj in resp.get("Contents", [])
        ]
        next_token = resp.get("NextContinuationToken") if resp.get("IsTruncated") else None
        return ListPage(objects=objects, next_token=next_token)

    async def delete_batch(self, bucket: str, keys: list[str]) -> None:
        """Delete keys with one ``delete_objects`` call (max 1000 keys).

        Raises:
            StoreError: If the call fails or any key is reported as failed.
        """
        with _translate_errors(f"delete objects in {bucket}"):
            resp = await self._client.delete_objects(
                Bucket=bucket,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )

        errors = resp.get("Errors", [])
        if errors:
            first = errors[0]
            raise StoreError(
                f"delete objects in {bucket}: {len(errors)} of {len(keys)} keys failed "
                f"(first: {first.get('Key', '')}: {first.get('Code', '')} {first.get('Message', '')})".rstrip(),
                provider_code=first.get("Code", ""),
            )

    async def upload_file(
        self, bucket: str, key: str, path: str, content_type: str = "application/octet-stream"
    ) -> int:
        """Upload a local file, switching to multipart above ``part_size``.

        Returns:
            Number of bytes uploaded.
        """
        size = os.path.getsize(path)
        if size <= self.part_size:
            data = await asyncio.to_thread(read_chunk, path, 0, size)
            checksum = base64.b64encode(hashlib.sha256(data).digest()).decode("ascii")
            with _translate_errors(f"upload {key}"):
                await self._client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                    ContentLength=len(data),
                    ChecksumSHA256=checksum,
                )
            return len(data)

        await self._multipart_upload(bucket, key, path, size, content_type)
        return size

    async def _multipart_upload(
        self, bucket: str, key: str, path: str, size: int, content_type: str
    ) -> None:
        with _translate_errors(f"start multipart upload for {key}"):
            resp = await self._client.create_multipart_upload(
                Bucket=bucket, Key=key, ContentType=content_type
            )
        upload_id = resp["UploadId"]
        part_size = multipart_part_size(size, self.part_size)
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def upload_part(part_number: int, offset: int) -> dict:
            async with semaphore:
                data = await asyncio.to_thread(read_chunk, path, offset, part_size)
                with _translate_errors(f"upload part {part_number} of {key}"):
                    part = await self._client.upload_part(
                        Bucket=bucket,
                        Key=key,
                        UploadId=upload_id,
                        PartNumber=part_number,
                        Body=data,
                    )
                return {"ETag": part["ETag"], "PartNumber": part_number}

        offsets = range(0, size, part_size)
        tasks = [
            asyncio.ensure_future(upload_part(number, offset))
            for number, offset in enumerate(offsets, 1)
        ]
        logger.debug(
            "Multipart upload %s for %s: %d parts of %d bytes",
            upload_id,
            key,
            len(tasks),
            part_size,
            extra={"bucket": bucket, "key": key, "size": size, "upload_id": upload_id, "part_count": len(tasks)},
        )

        try:
            parts = await asyncio.gather(*tasks)
            with _translate_errors(f"complete multipart upload for {key}"):
                await self._client.complete_multipart_upload(
                    Bucket=bucket,
                    Key=key,
                    UploadId=upload_id,
                    MultipartUpload={"Parts": list(parts)},
                )
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            try:
                await self._client.abort_multipart_upload(
                    Bucket=bucket, Key=key, UploadId=upload_id
                )
            except Exception:
                logger.warning("Failed to abort multipart upload %s for %s", upload_id, key)
            raise

    async def download_file(self, bucket: str, key: str, path: str) -> int:
        """Stream an object into ``path`` in 64KB chunks.

        Returns:
            Number of bytes written.
        """
        written = 0
        with _translate_errors(f"download {key}"):
            resp = await self._client.get_object(Bucket=bucket, Key=key)
            with atomic_output(path) as fh:
                async with resp["Body"] as stream:
                    while True:
                        chunk = await stream.read(_CHUNK_SIZE)
                        if not chunk:
                            break
                        fh.write(chunk)
                        written += len(chunk)
        return written

    async def get_bucket_region(self, bucket: str) -> str:
        """Return the bucket's ``LocationConstraint`` ("" for us-east-1)."""
        with _translate_errors(f"get location of bucket {bucket}"):
            resp = await self._client.get_bucket_location(Bucket=bucket)
        return resp.get("LocationConstraint") or ""

    async def get_bucket_creation_date(self, bucket: str) -> datetime | None:
        """Find the bucket's creation date in the account's bucket list."""
        with _translate_errors("list buckets"):
            resp = await self._client.list_buckets()
        for entry in resp.get("Buckets", []):
            if entry.get("Name") == bucket:
                return entry.get("CreationDate")
        return None
