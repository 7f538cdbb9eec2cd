from typing import NamedTuple


class ResolvedPath(NamedTuple):
    bucket: str
    parent_prefix: str
    prefix: str


def resolve_path(path):
    """Split a URL path into bucket, parent prefix and prefix.

    ``/my-bucket/dir1/dir2`` resolves to
    ``("my-bucket", "dir1", "dir1/dir2")``. Never raises; empty segments
    are kept as they are.
    """
    path = path.removeprefix("/")
    parts = path.strip("/").split("/")
    bucket = parts[0]
    parent_prefix = ""
    if len(parts) > 1:
        parent_prefix = "/".join(parts[1:-1])
    prefix = "/".join(parts[1:])
    return ResolvedPath(bucket, parent_prefix, prefix)


def normalize_prefix(prefix):
    if prefix and not prefix.endswith("/"):
        return prefix + "/"
    return prefix


def cache_key(bucket, prefix):
    return f"{bucket}/{normalize_prefix(prefix)}"
