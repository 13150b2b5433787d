"""Card records shared by the data sources, the selector and the cache store."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True)
class CardCandidate:
    """A card a data source offers for a key; lives only in memory."""

    card_id: str
    display_name: str
    source_set_id: str
    source_set_name: str
    rarity: str | None = None
    image_small: str | None = None
    image_large: str | None = None

    def image_url(self, size: str = "small") -> str | None:
        """Return the requested image URL, falling back to the other size."""
        if size == "large":
            return self.image_large or self.image_small
        return self.image_small or self.image_large


@dataclass(frozen=True)
class CachedCard:
    """One downloaded image as recorded in a key's metadata file."""

    card_id: str
    display_name: str
    source_set_name: str
    image_url: str
    rarity: str | None = None
    filename: str | None = None

    @classmethod
    def from_candidate(cls, candidate: CardCandidate, image_url: str) -> CachedCard:
        return cls(
            card_id=candidate.card_id,
            display_name=candidate.display_name,
            source_set_name=candidate.source_set_name,
            image_url=image_url,
            rarity=candidate.rarity,
        )

    def with_filename(self, filename: str) -> CachedCard:
        return replace(self, filename=filename)

    def to_dict(self) -> dict[str, Any]:
        return {
            "filename": self.filename,
            "cardId": self.card_id,
            "name": self.display_name,
            "set": self.source_set_name,
            "rarity": self.rarity,
            "imageUrl": self.image_url,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CachedCard:
        return cls(
            card_id=data.get("cardId", ""),
            display_name=data.get("name", ""),
            source_set_name=data.get("set", ""),
            image_url=data.get("imageUrl", ""),
            rarity=data.get("rarity"),
            filename=data.get("filename"),
        )


__all__ = ["CachedCard", "CardCandidate"]
