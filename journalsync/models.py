"""Journal entry models and their wire representation."""

import json
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .errors import DecodeError, EncodeError


class Mood(Enum):
    """Mood attached to a journal entry."""

    SAD = "sad"
    NEUTRAL = "neutral"
    HAPPY = "happy"


def parse_mood(value: Any) -> "Mood | str":
    """Map a raw mood value to a Mood, keeping unknown strings verbatim."""
    if isinstance(value, Mood):
        return value
    if not isinstance(value, str):
        raise ValueError(f"mood must be a string, got {type(value).__name__}")
    try:
        return Mood(value)
    except ValueError:
        return value


def _mood_value(mood: "Mood | str") -> str:
    return mood.value if isinstance(mood, Mood) else mood


@dataclass
class EntryRepresentation:
    """Wire-format projection of an Entry.

    Field names on the wire follow the remote store's camelCase keys
    (``bodyText``); timestamps travel as ISO 8601 strings.
    """

    title: str
    body_text: str
    timestamp: datetime
    mood: Mood | str
    identifier: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            "title": self.title,
            "bodyText": self.body_text,
            "timestamp": self.timestamp.isoformat(),
            "mood": _mood_value(self.mood),
        }
        if self.identifier:
            data["identifier"] = self.identifier
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EntryRepresentation":
        """Create from dictionary.

        Raises:
            DecodeError: If a field is missing or has the wrong type.
        """
        if not isinstance(data, dict):
            raise DecodeError(f"expected an object, got {type(data).__name__}")

        try:
            title = data["title"]
            body_text = data["bodyText"]
            if not isinstance(title, str) or not isinstance(body_text, str):
                raise ValueError("title and bodyText must be strings")

            identifier = data.get("identifier")
            if identifier is not None and not isinstance(identifier, str):
                raise ValueError("identifier must be a string")

            return cls(
                title=title,
                body_text=body_text,
                timestamp=datetime.fromisoformat(data["timestamp"]),
                mood=parse_mood(data["mood"]),
                identifier=identifier or None,
            )
        except KeyError as e:
            raise DecodeError(f"missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise DecodeError(str(e)) from e

    def encode(self) -> bytes:
        """Encode as a JSON document body.

        Raises:
            EncodeError: If the representation can't be serialized.
        """
        try:
            return json.dumps(self.to_dict()).encode("utf-8")
        except (AttributeError, TypeError, ValueError) as e:
            raise EncodeError(f"Failed to encode entry {self.identifier}: {e}") from e

    @classmethod
    def decode(cls, raw: bytes) -> "EntryRepresentation | None":
        """Decode a single keyed document.

        Returns None when the store answers ``null`` (no such document).
        """
        data = _load_json(raw)
        if data is None:
            return None
        return cls.from_dict(data)


def decode_collection(raw: bytes) -> dict[str, EntryRepresentation]:
    """Decode a keyed document collection.

    Every value must decode on its own; one bad value fails the whole
    collection. A ``null`` body is an empty collection.

    Raises:
        DecodeError: If the payload isn't a keyed collection of entries.
    """
    data = _load_json(raw)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise DecodeError(f"expected a keyed collection, got {type(data).__name__}")

    return {key: EntryRepresentation.from_dict(value) for key, value in data.items()}


def _load_json(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, ValueError) as e:
        raise DecodeError(f"Malformed JSON payload: {e}") from e


@dataclass
class Entry:
    """A journal entry as persisted locally."""

    identifier: str | None
    title: str | None
    body_text: str
    timestamp: datetime | None
    mood: Mood | str = Mood.NEUTRAL
    pk: int | None = None  # Local row id, assigned by the store

    @classmethod
    def new(
        cls,
        title: str,
        body_text: str = "",
        mood: Mood | str = Mood.NEUTRAL,
    ) -> "Entry":
        """Create a brand-new entry with a fresh identifier."""
        return cls(
            identifier=str(uuid.uuid4()),
            title=title,
            body_text=body_text,
            timestamp=datetime.now(),
            mood=parse_mood(mood),
        )

    @classmethod
    def from_representation(cls, representation: EntryRepresentation) -> "Entry":
        return cls(
            identifier=representation.identifier,
            title=representation.title,
            body_text=representation.body_text,
            timestamp=representation.timestamp,
            mood=representation.mood,
        )

    @property
    def representation(self) -> EntryRepresentation | None:
        """Wire projection, or None if the entry lacks title or timestamp."""
        if self.title is None or self.timestamp is None:
            return None
        return EntryRepresentation(
            title=self.title,
            body_text=self.body_text or "",
            timestamp=self.timestamp,
            mood=self.mood,
            identifier=self.identifier,
        )

    def apply(self, representation: EntryRepresentation) -> None:
        """Overwrite content fields from a remote representation."""
        self.title = representation.title
        self.body_text = representation.body_text
        self.timestamp = representation.timestamp
        self.mood = representation.mood

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "title": self.title,
            "body_text": self.body_text,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "mood": _mood_value(self.mood),
        }
