"""
Catalog package for ts-reconcile.

This package contains the message key model, the in-memory catalog model,
the location delta codec and the TS catalog store.
"""

from .keys import (
    NO_COMMENT,
    Comment,
    Disambiguation,
    MessageKey,
    NoComment,
    find_ambiguous_keys,
    normalize,
)
from .locations import (
    DecoderState,
    LocationDecodeError,
    LocationRecord,
    LocationsMode,
    decode_locations,
    encode_locations,
)
from .models import (
    Catalog,
    CatalogStatistics,
    Context,
    LocationIssue,
    Message,
    MessageStatus,
    Occurrence,
)
from .store import (
    CatalogStore,
    DuplicatePolicy,
    load_catalog,
    read_catalog_file,
    serialize_catalog,
    write_catalog_file,
)

__all__ = [
    # Keys
    "NO_COMMENT",
    "Comment",
    "Disambiguation",
    "MessageKey",
    "NoComment",
    "find_ambiguous_keys",
    "normalize",
    # Location codec
    "DecoderState",
    "LocationDecodeError",
    "LocationRecord",
    "LocationsMode",
    "decode_locations",
    "encode_locations",
    # Model
    "Catalog",
    "CatalogStatistics",
    "Context",
    "LocationIssue",
    "Message",
    "MessageStatus",
    "Occurrence",
    # Store
    "CatalogStore",
    "DuplicatePolicy",
    "load_catalog",
    "read_catalog_file",
    "serialize_catalog",
    "write_catalog_file",
]
