from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BucketRecord:
    name: str
    creation_date: datetime


@dataclass(frozen=True)
class ObjectSummary:
    """One content entry of a raw listing."""

    key: str
    size: int
    last_modified: datetime


@dataclass(frozen=True)
class ListingPage:
    """Raw single-page listing under a prefix, as cached.

    Common prefixes come before contents, in the order the backend
    returned them.
    """

    common_prefixes: tuple = ()
    contents: tuple = ()


@dataclass(frozen=True)
class StorageObject:
    """A directory or file entry as shown to the user."""

    name: str
    short_name: str
    is_directory: bool
    size: str = ""
    last_modified: datetime | None = None
