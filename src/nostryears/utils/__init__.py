"""Relay I/O, key handling, and text analysis helpers.

The utils layer sits in the middle of the diamond DAG, depending only on
[nostryears.models][nostryears.models] and the exception hierarchy in
[nostryears.core.exceptions][nostryears.core.exceptions]. It provides the
retrieval and publish boundaries used by
[nostryears.services][nostryears.services].

Attributes:
    keys: Optional signing-key loading from environment variables and
        ``npub``/hex public key normalization.
    protocol: [RelayPool][nostryears.utils.protocol.RelayPool] over
        ``nostr-sdk``, the [EventSource][nostryears.utils.protocol.EventSource]
        protocol, and [EventFilter][nostryears.utils.protocol.EventFilter].
    text: URL stripping, character counting, and image URL detection.

Examples:
    ```python
    from nostryears.utils.protocol import RelayPool
    from nostryears.utils.keys import load_keys_from_env
    ```
"""
