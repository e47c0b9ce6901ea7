"""nostryears exception hierarchy.

Provides typed exceptions for all error categories, so that callers can
distinguish a rejected request from a recoverable relay failure and allow
``CancelledError`` to propagate untouched.

Exception hierarchy:

```text
NostrYearsError (base -- never raised directly)
├── ConfigurationError      -- invalid request or config (empty relays, bad window, bad YAML)
├── ConnectivityError       -- relay unreachable, query failure
│   └── RelayTimeoutError   -- connection or response timed out
├── ProtocolError           -- malformed wire data (invoice, profile, snapshot JSON)
└── PublishingError         -- signing or broadcast failure
```

Note:
    Transport errors ([ConnectivityError][nostryears.core.exceptions.ConnectivityError])
    and decode errors ([ProtocolError][nostryears.core.exceptions.ProtocolError])
    are recovered locally by the services layer and never abort an
    accumulation. Only
    [ConfigurationError][nostryears.core.exceptions.ConfigurationError]
    is surfaced to the caller of
    [StatsEngine.compute()][nostryears.services.engine.StatsEngine.compute].
"""

from __future__ import annotations


class NostrYearsError(Exception):
    """Base exception for all nostryears errors.

    Never raised directly -- always use a specific subclass.
    """


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(NostrYearsError):
    """Invalid request or configuration (YAML, env vars, CLI flags, relay set, window).

    Raised before any relay is contacted.
    """


# ---------------------------------------------------------------------------
# Connectivity
# ---------------------------------------------------------------------------


class ConnectivityError(NostrYearsError):
    """Base for all relay/network connectivity errors.

    See Also:
        [RelayTimeoutError][nostryears.core.exceptions.RelayTimeoutError]:
            Connection or response timed out.
    """


class RelayTimeoutError(ConnectivityError):
    """Connection or response timed out."""


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ProtocolError(NostrYearsError):
    """Malformed wire data: invoice, profile JSON, or published snapshot JSON."""


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class PublishingError(NostrYearsError):
    """Failed to sign or broadcast a Nostr event to relays."""
