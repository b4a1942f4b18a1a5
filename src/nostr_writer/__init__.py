r"""nostr-writer -- sync markdown documents with Nostr long-form articles.

Publishes documents from a local vault as NIP-23 addressable events
(create or update in place), and downloads articles by address back into
the vault, moving embedded media to and from Blossom media servers.

Imports flow strictly downward:

```text
              services         Publish/download orchestration, session wiring
             /   |   \
          core  nips  utils    Index, logging, errors / NIP mappings / collaborators
             \   |   /
              models           Pure frozen dataclasses (zero I/O)
```

Examples:
    ```python
    from nostr_writer.services import WriterConfig, WriterSession

    async with WriterSession(WriterConfig.from_yaml("config/writer.yaml")) as session:
        await session.publisher.publish("posts/hello.md")
    ```
"""

from importlib.metadata import version as _get_version


__version__ = _get_version("nostr-writer")
