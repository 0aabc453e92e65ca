"""Object store implementations for bucketctl."""

from typing import TYPE_CHECKING

from bucketctl.storage.backend import ObjectStore

if TYPE_CHECKING:
    from bucketctl.config import StorageCredentials

__all__ = ["ObjectStore", "create_object_store"]


def create_object_store(credentials: "StorageCredentials") -> ObjectStore:
    """Create the S3 object store described by the credentials.

    Args:
        credentials: Endpoint, region and keys for the store.

    Returns:
        An uninitialized S3ObjectStore; call ``init()`` before use.
    """
    from bucketctl.storage.aws import S3ObjectStore

    return S3ObjectStore(
        region=credentials.region,
        endpoint_url=credentials.endpoint_url,
        use_path_style=credentials.uses_path_style,
        access_key_id=credentials.access_key,
        secret_access_key=credentials.secret_key.get_secret_value(),
    )
