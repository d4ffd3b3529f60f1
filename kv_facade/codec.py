"""JSON text codec for values stored through the facade."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from collections.abc import Callable


def normalize_text(value: str | bytes | None) -> str | None:
    """Return ``value`` as text, decoding bytes replies from the client."""
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode()
    return value


class JsonCodec:
    """Encode application values to JSON text and decode them back."""

    def __init__(
        self,
        encoder: Callable[[Any], str] = json.dumps,
        decoder: Callable[[str], Any] = json.loads,
    ) -> None:
        super().__init__()
        self._encoder = encoder
        self._decoder = decoder

    def encode(self, value: Any) -> str:
        """Serialize ``value``; raises for values JSON cannot represent."""
        return self._encoder(value)

    def decode(self, text: str | bytes) -> Any:
        """Deserialize stored text; raises on malformed input."""
        return self._decoder(normalize_text(text) or "")

    def decode_if(self, text: str | bytes, parse: bool) -> Any:
        """Decode when ``parse`` is set, otherwise return the raw text."""
        if parse:
            return self.decode(text)
        return normalize_text(text)
