"""Local store layer.

Elements that could not be delivered are kept here, in a single snapshot
shared by every process that uses the same storage, until a later drain
sends them.
"""

from pymixpanel.store.blob import BlobStore, FileBlobStore, MemoryBlobStore
from pymixpanel.store.local import LocalStore
from pymixpanel.store.pending import PendingElements

__all__ = [
    "BlobStore",
    "FileBlobStore",
    "LocalStore",
    "MemoryBlobStore",
    "PendingElements",
]
