"""Nostr Implementation Possibilities -- wire formats consumed and produced.

The NIPs layer sits in the middle of the diamond DAG, depending only on
[nostryears.models][nostryears.models] and
[nostryears.core.exceptions][nostryears.core.exceptions]. It performs no
I/O: every function turns event tags or content into typed values.

Warning:
    Decoders in this layer **never abort an accumulation**. The zap
    helpers return ``0`` on malformed input; the profile and snapshot
    parsers raise [ProtocolError][nostryears.core.exceptions.ProtocolError],
    which callers catch per record.

Attributes:
    decode_invoice_amount_sats: BOLT11 amount extraction (NIP-57).
    parse_profile_content: Kind 0 JSON content to
        [Profile][nostryears.models.snapshot.Profile] (NIP-01).
    PublishedSnapshot: Kind 30078 content model with camelCase keys (NIP-78).
    build_snapshot_event: ``EventBuilder`` for a published snapshot.
"""

from .event_builders import build_snapshot_event, build_snapshot_tags
from .nip01 import ProfileContent, parse_profile_content, profile_from_event
from .nip57 import (
    decode_invoice_amount_msats,
    decode_invoice_amount_sats,
    embedded_zap_request_id,
    zap_receipt_amount_sats,
    zap_recipient,
    zap_request_amount_sats,
    zap_sender,
)
from .nip78 import PublishedSnapshot


__all__ = [
    "ProfileContent",
    "PublishedSnapshot",
    "build_snapshot_event",
    "build_snapshot_tags",
    "decode_invoice_amount_msats",
    "decode_invoice_amount_sats",
    "embedded_zap_request_id",
    "parse_profile_content",
    "profile_from_event",
    "zap_receipt_amount_sats",
    "zap_recipient",
    "zap_request_amount_sats",
    "zap_sender",
]
