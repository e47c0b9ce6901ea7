"""Nostr key handling for nostryears.

Loads the optional signing key used to publish snapshots, and normalizes
subject identities given as ``npub1...`` or hex into lowercase hex.

Warning:
    Private keys must **never** be stored in configuration files, source
    code, or logged to any output. Only the *name* of the environment
    variable holding the key is configurable.

Note:
    A missing key is not an error: the publisher degrades to read-only
    mode. A key that is present but malformed *is* an error, so that a
    typo does not silently disable publishing.

Examples:
    ```python
    import os

    os.environ["PRIVATE_KEY"] = "nsec1..."  # pragma: allowlist secret
    keys = load_keys_from_env("PRIVATE_KEY")
    parse_public_key("npub1...")  # '3bf0c63f...'
    ```
"""

from __future__ import annotations

import os

from nostr_sdk import Keys, PublicKey


ENV_PRIVATE_KEY = "PRIVATE_KEY"  # pragma: allowlist secret  # Default env var name


def load_keys_from_env(env_var: str = ENV_PRIVATE_KEY) -> Keys | None:
    """Load Nostr keys from an environment variable.

    Parses a private key (nsec1 bech32 or 64-char hex).

    Returns:
        A ``nostr_sdk.Keys`` instance, or ``None`` if the variable is unset
        or empty.

    Raises:
        ValueError: If the variable is set but does not hold a valid key.
    """
    value = os.getenv(env_var)
    if not value:
        return None
    try:
        return Keys.parse(value)
    except Exception as e:  # nostr_sdk.NostrError is an FFI type
        raise ValueError(f"{env_var} does not contain a valid private key") from e


def parse_public_key(value: str) -> str:
    """Normalize an ``npub1...`` or hex public key to lowercase hex.

    Raises:
        ValueError: If *value* is not a valid public key.
    """
    try:
        return PublicKey.parse(value.strip()).to_hex()
    except Exception as e:  # nostr_sdk.NostrError is an FFI type
        raise ValueError(f"invalid public key: {value!r}") from e
