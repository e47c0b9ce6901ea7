"""NIP-57 zap helpers and BOLT11 invoice amount decoding.

A zap receipt (kind 9735) carries the paid BOLT11 invoice in its
``bolt11`` tag and the original zap request (kind 9734) as JSON in its
``description`` tag. The amount lives in the invoice's human-readable
part::

    ln + <currency> + [<amount><multiplier>] + "1" + <bech32 data>

e.g. ``lnbc2500u1p...`` is 2500 micro-BTC, i.e. 250,000 sats.

Every function here is total: malformed input yields ``0`` / ``None``
and never raises, so a single bad receipt cannot abort an accumulation.

See Also:
    [nostryears.services.accumulator][]: Accumulates the decoded amounts
        into [ZapTotals][nostryears.models.snapshot.ZapTotals].
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from nostryears.models import Event


logger = logging.getLogger(__name__)


_BECH32_CHARSET = frozenset("qpzry9x8gf2tvdw0s3jn54khce6mua7l")

# timestamp (7) + signature (104) + checksum (6)
_MIN_DATA_LENGTH = 117

_HRP_PATTERN = re.compile(r"^ln([a-z]+?)(?:(\d+)([munp]?))?$")

_MSATS_PER_BTC = 100_000_000_000

# Multiplier -> (numerator, denominator) applied to the BTC-denominated amount, in msats.
_MULTIPLIERS: dict[str, tuple[int, int]] = {
    "": (_MSATS_PER_BTC, 1),
    "m": (_MSATS_PER_BTC // 1_000, 1),
    "u": (_MSATS_PER_BTC // 1_000_000, 1),
    "n": (_MSATS_PER_BTC // 1_000_000_000, 1),
    "p": (1, 10),
}

_LIGHTNING_URI_PREFIX = "lightning:"


def decode_invoice_amount_msats(invoice: str) -> int:
    """Extract the amount of a BOLT11 invoice in millisatoshis.

    Args:
        invoice: BOLT11 payment request, optionally prefixed with
            ``lightning:``. Case-insensitive.

    Returns:
        The amount in millisatoshis, or ``0`` if the invoice carries no
        amount or is not well-formed.
    """
    if not isinstance(invoice, str):
        return 0

    s = invoice.strip().lower()
    if s.startswith(_LIGHTNING_URI_PREFIX):
        s = s[len(_LIGHTNING_URI_PREFIX) :]

    separator = s.rfind("1")
    if separator < 0:
        return 0

    hrp, data = s[:separator], s[separator + 1 :]
    if len(data) < _MIN_DATA_LENGTH or not set(data) <= _BECH32_CHARSET:
        logger.debug("invoice_malformed reason=data_part length=%d", len(data))
        return 0

    match = _HRP_PATTERN.match(hrp)
    if match is None:
        logger.debug("invoice_malformed reason=hrp hrp=%s", hrp)
        return 0

    digits, multiplier = match.group(2), match.group(3) or ""
    if digits is None:
        return 0

    numerator, denominator = _MULTIPLIERS[multiplier]
    value = int(digits) * numerator
    if value % denominator:
        # Sub-millisatoshi pico amounts are invalid per BOLT11.
        logger.debug("invoice_malformed reason=sub_msat amount=%s%s", digits, multiplier)
        return 0
    return value // denominator


def decode_invoice_amount_sats(invoice: str) -> int:
    """Extract the amount of a BOLT11 invoice in whole satoshis (floored).

    Any parse failure yields ``0``, treated as "no value transferred".

    Examples:
        ```python
        decode_invoice_amount_sats("lnbc2500u1...")  # 250000
        decode_invoice_amount_sats("not an invoice")  # 0
        ```
    """
    return decode_invoice_amount_msats(invoice) // 1000


# =============================================================================
# Zap receipt / request accessors
# =============================================================================


def _parse_description(event: Event) -> dict[str, Any] | None:
    """Return the zap request embedded in a receipt's ``description`` tag."""
    raw = event.first_tag_value("description")
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.debug("zap_description_malformed event_id=%s", event.id)
        return None
    return data if isinstance(data, dict) else None


def zap_receipt_amount_sats(event: Event) -> int:
    """Satoshi value of a kind 9735 receipt (from its ``bolt11`` tag)."""
    invoice = event.first_tag_value("bolt11")
    if invoice is None:
        return 0
    return decode_invoice_amount_sats(invoice)


def zap_request_amount_sats(event: Event) -> int:
    """Satoshi value declared by a kind 9734 request (its ``amount`` tag, in msats)."""
    raw = event.first_tag_value("amount")
    if raw is None:
        return 0
    try:
        msats = int(raw)
    except ValueError:
        return 0
    return max(msats, 0) // 1000


def zap_recipient(event: Event) -> str | None:
    """Recipient identity of a zap receipt or request (``p`` tag)."""
    return event.first_tag_value("p")


def zap_sender(event: Event) -> str | None:
    """Sender identity of a zap receipt.

    Uses the ``P`` tag when present, otherwise the author of the embedded
    zap request.
    """
    sender = event.first_tag_value("P")
    if sender is not None:
        return sender
    request = _parse_description(event)
    if request is None:
        return None
    pubkey = request.get("pubkey")
    return pubkey if isinstance(pubkey, str) and pubkey else None


def embedded_zap_request_id(event: Event) -> str | None:
    """ID of the zap request embedded in a receipt, if any."""
    request = _parse_description(event)
    if request is None:
        return None
    request_id = request.get("id")
    return request_id if isinstance(request_id, str) and request_id else None
