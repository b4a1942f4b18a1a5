"""Nostr key loading for nostr-writer.

Private keys are accepted as 64-char hex or ``nsec1`` bech32 and only ever
read from the environment, never from configuration files.

Warning:
    Private keys must **never** be stored in configuration files, source code,
    or logged to any output.

Examples:
    ```python
    import os

    os.environ["NOSTR_PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("NOSTR_PRIVATE_KEY")
    print(keys.public_key().to_bech32())
    ```
"""

from __future__ import annotations

import os

from nostr_sdk import Keys, NostrSdkError


ENV_PRIVATE_KEY = "NOSTR_PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def parse_private_key(value: str) -> Keys:
    """Parse a hex or ``nsec1`` private key.

    Raises:
        ValueError: If *value* is neither a valid hex key nor a valid nsec.
    """
    try:
        return Keys.parse(value.strip())
    except NostrSdkError as e:
        raise ValueError("Invalid private key") from e


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys | None:
    """Load Nostr keys from an environment variable.

    Returns:
        A ``nostr_sdk.Keys`` instance, or ``None`` when the variable is unset
        or empty (no active identity).

    Raises:
        ValueError: If the variable is set but holds a malformed key.

    Warning:
        The returned ``Keys`` object holds the private key in memory for the
        lifetime of the process. Do not serialize or log it.
    """
    value = os.getenv(env_var)
    if not value:
        return None
    return parse_private_key(value)
