"""NIP-01 kind 0 profile metadata parsing.

Profile content is untrusted JSON published by arbitrary clients. Only the
fields surfaced by the engine are kept; values of the wrong type are
silently dropped instead of rejecting the whole profile.

See Also:
    [Profile][nostryears.models.snapshot.Profile]: The model returned to
        callers.
    [EventRetriever][nostryears.services.retrieval.EventRetriever]: Fires
        the profile lookup concurrently with the retrieval phases.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from nostryears.core.exceptions import ProtocolError
from nostryears.models import EventKind, Profile


if TYPE_CHECKING:
    from nostryears.models import Event


logger = logging.getLogger(__name__)


class ProfileContent(BaseModel):
    """Typed view over the JSON content of a kind 0 event.

    Unknown keys are ignored. ``displayName`` is accepted as an alias of
    ``display_name`` since several clients publish the camelCase form.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str | None = None
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("display_name", "displayName")
    )
    picture: str | None = None
    about: str | None = None
    nip05: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _drop_invalid(cls, value: Any) -> str | None:
        if isinstance(value, str) and value:
            return value
        return None

    def to_profile(self) -> Profile:
        return Profile(
            name=self.name,
            display_name=self.display_name,
            picture=self.picture,
            about=self.about,
            nip05=self.nip05,
        )


def parse_profile_content(content: str) -> Profile:
    """Parse kind 0 JSON content into a [Profile][nostryears.models.snapshot.Profile].

    Raises:
        ProtocolError: If the content is not a JSON object.
    """
    try:
        data = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolError(f"profile content is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"profile content must be a JSON object, got {type(data).__name__}")
    try:
        return ProfileContent.model_validate(data).to_profile()
    except ValidationError as e:
        raise ProtocolError(f"profile content failed validation: {e}") from e


def profile_from_event(event: Event | None) -> Profile | None:
    """Return the profile carried by a kind 0 event, or ``None``.

    Malformed content yields ``None`` and is logged at DEBUG.
    """
    if event is None or event.kind != EventKind.SET_METADATA:
        return None
    try:
        return parse_profile_content(event.content)
    except ProtocolError as e:
        logger.debug("profile_malformed pubkey=%s error=%s", event.pubkey, e)
        return None
