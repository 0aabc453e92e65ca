"""Mapping of local names to remote object keys."""


def resolve_remote_key(destination: str, filename: str) -> str:
    """Join a destination prefix and a filename into an object key.

    An empty destination yields ``filename`` unchanged. Otherwise leading
    ``/`` characters are stripped from the destination and a single ``/``
    separator is added when missing. Internal ``..`` segments and repeated
    slashes are kept as given.

    Examples:
        >>> resolve_remote_key("", "f.txt")
        'f.txt'
        >>> resolve_remote_key("/a/b", "f.txt")
        'a/b/f.txt'
    """
    destination = destination.lstrip("/")
    if not destination:
        return filename
    if not destination.endswith("/"):
        destination += "/"
    return destination + filename


def folder_prefix(folder: str) -> str:
    """Return the listing prefix for a folder argument (``logs`` -> ``logs/``)."""
    if folder and not folder.endswith("/"):
        return folder + "/"
    return folder
