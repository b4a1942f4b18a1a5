"""Nostr protocol mappings: NIP-19 addresses, NIP-23 articles, NIP-65 mailboxes, Blossom auth.

Examples:
    ```python
    from nostr_writer.nips import decode_pointer, event_to_frontmatter
    ```
"""

from .blossom import authorization_header, build_upload_auth
from .nip19 import decode_pointer, encode_naddr, encode_nprofile, encode_npub, resolve_address
from .nip23 import (
    build_article_draft,
    content_hashtags,
    event_to_frontmatter,
    fallback_identifier,
    slugify,
    title_from_body,
)
from .nip65 import mailboxes_from_index, parse_mailboxes


__all__ = [
    "authorization_header",
    "build_article_draft",
    "build_upload_auth",
    "content_hashtags",
    "decode_pointer",
    "encode_naddr",
    "encode_nprofile",
    "encode_npub",
    "event_to_frontmatter",
    "fallback_identifier",
    "mailboxes_from_index",
    "parse_mailboxes",
    "resolve_address",
    "slugify",
    "title_from_body",
]
