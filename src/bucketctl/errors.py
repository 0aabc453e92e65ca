"""Error definitions for bucketctl.

Every failure surfaced by the core is a ``BucketCtlError`` subclass carrying a
stable ``code`` string. The CLI renders ``code`` and ``message`` into the
structured error response.
"""


class BucketCtlError(Exception):
    """A bucketctl error with a stable code and a human-readable message.

    Attributes:
        code: Machine-readable error code (e.g. "PathNotFound").
        message: Human-readable error description.
    """

    def __init__(self, code: str, message: str) -> None:
        """Initialize the error.

        Args:
            code: Error code.
            message: Error description.
        """
        super().__init__(message)
        self.code = code
        self.message = message


# -- Storage primitive ---------------------------------------------------------


class StoreError(BucketCtlError):
    """A call to the object store failed.

    Attributes:
        provider_code: The provider's error code (e.g. "NoSuchBucket"), if known.
    """

    def __init__(self, message: str, provider_code: str = "") -> None:
        super().__init__(code="StoreError", message=message)
        self.provider_code = provider_code


# -- Local filesystem ------------------------------------------------------------


class PathNotFound(BucketCtlError):
    """A local path given as input does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(code="PathNotFound", message=f"path does not exist: {path}")
        self.path = path


class ArchiveCreationFailed(BucketCtlError):
    """The zip archive could not be built."""

    def __init__(self, message: str) -> None:
        super().__init__(code="ArchiveCreationFailed", message=message)


class DirectoryCreationFailed(BucketCtlError):
    """A local destination directory could not be created."""

    def __init__(self, path: str, reason: str = "") -> None:
        message = f"failed to create destination directory: {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="DirectoryCreationFailed", message=message)
        self.path = path


# -- Remote operations -----------------------------------------------------------


class ListingFailed(BucketCtlError):
    """Listing objects under a prefix failed."""

    def __init__(self, bucket: str, prefix: str, reason: str = "") -> None:
        message = f"failed to list objects in {bucket}/{prefix}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="ListingFailed", message=message)


class BucketLookupFailed(BucketCtlError):
    """Bucket-level metadata (location, creation date) could not be read."""

    def __init__(self, bucket: str, reason: str = "") -> None:
        message = f"failed to look up bucket {bucket}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="BucketLookupFailed", message=message)


class BatchDeleteFailed(BucketCtlError):
    """A bulk-delete call failed.

    Batches deleted before the failing one stay deleted.

    Attributes:
        deleted_before_failure: Keys removed by earlier, successful batches.
    """

    def __init__(self, batch_index: int, deleted_before_failure: int, reason: str = "") -> None:
        message = f"failed to delete objects batch {batch_index}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="BatchDeleteFailed", message=message)
        self.batch_index = batch_index
        self.deleted_before_failure = deleted_before_failure


class UploadFailed(BucketCtlError):
    """Uploading a local file failed."""

    def __init__(self, path: str, reason: str = "") -> None:
        message = f"failed to upload {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="UploadFailed", message=message)
        self.path = path


class DownloadFailed(BucketCtlError):
    """Downloading an object failed."""

    def __init__(self, key: str, reason: str = "") -> None:
        message = f"failed to download {key}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(code="DownloadFailed", message=message)
        self.key = key


class NoObjectsFound(BucketCtlError):
    """A prefix contains no objects."""

    def __init__(self, folder: str) -> None:
        super().__init__(code="NoObjectsFound", message=f"no files found in folder: {folder}")
        self.folder = folder


# -- Invocation ------------------------------------------------------------------


class OperationTimeout(BucketCtlError):
    """The operation's deadline expired before it finished."""

    def __init__(self, operation: str, timeout: float) -> None:
        super().__init__(
            code="Timeout",
            message=f"{operation} timed out after {timeout:g} seconds",
        )
        self.operation = operation
        self.timeout = timeout


class ConfigurationInvalid(BucketCtlError):
    """Credentials or bucket configuration are missing or invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(code="ConfigurationInvalid", message=message)


class InvalidArgument(BucketCtlError):
    """An operation argument is out of range."""

    def __init__(self, message: str) -> None:
        super().__init__(code="InvalidArgument", message=message)
