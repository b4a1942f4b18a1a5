"""Publisher service package.

Re-exports the public symbols::

    from nostr_writer.services.publisher import Publisher, PublishReport
"""

from .service import Publisher
from .utils import (
    PreparedDocument,
    PublishReport,
    PublishState,
    apply_defaults,
    document_identifier,
    is_valid_url,
    merge_frontmatter,
    read_document,
)


__all__ = [
    "PreparedDocument",
    "PublishReport",
    "PublishState",
    "Publisher",
    "apply_defaults",
    "document_identifier",
    "is_valid_url",
    "merge_frontmatter",
    "read_document",
]
