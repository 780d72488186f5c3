"""Game-related data models."""

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

import structlog

log = structlog.stdlib.get_logger()


# Keys owned by GameRecord; everything else in a stored game is kept in `extra`
_DISPLAY_KEYS = (
    "name", "description", "category", "slug",
    "thumb_url", "logo_url", "gif_url", "play_url", "size",
)
_RANKING_KEYS = (
    "playCount", "lastPlayed", "isActive", "rank", "manualRank",
    "statusUpdatedAt", "rankUpdatedAt", "createdAt",
)
_KNOWN_KEYS = frozenset(("id",) + _DISPLAY_KEYS + _RANKING_KEYS)


class UnrecognizedDocumentError(ValueError):
    """Raised when a stored document is neither a list of games nor {"games": [...]}."""


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp into an aware UTC datetime.

    Accepts ISO-8601 strings (``Z`` suffix allowed) and epoch milliseconds.
    Anything else is logged and read as None so one bad record does not
    block loading the collection.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            log.warning("Ignoring out-of-range timestamp", value=value)
            return None
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            log.warning("Ignoring unparseable timestamp", value=value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class GameRecord:
    """One playable title and its ranking state."""
    id: str
    name: str = ""
    description: str = ""
    category: str = ""
    slug: str = ""
    thumb_url: str = ""
    logo_url: str = ""
    gif_url: str = ""
    play_url: str = ""
    size: str = "small"
    play_count: int = 0
    last_played: datetime | None = None
    is_active: bool = True
    rank: int | None = None  # None until the record has been ranked once
    manual_rank: int | None = None  # Admin pin, excluded from automatic ranking
    status_updated_at: datetime | None = None
    rank_updated_at: datetime | None = None
    created_at: datetime | None = None
    extra: dict[str, Any] = field(default_factory=dict, compare=False)
    has_play_count: bool = field(default=True, compare=False, repr=False)

    @property
    def has_ranking_data(self) -> bool:
        """Whether the stored record already carried both play count and rank."""
        return self.has_play_count and self.rank is not None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GameRecord":
        """Build a record from its stored JSON representation."""
        play_count = _optional_int(data.get("playCount"))
        display = {key: str(data[key]) for key in _DISPLAY_KEYS if data.get(key) is not None}
        return cls(
            id=str(data.get("id") or ""),
            play_count=max(play_count or 0, 0),
            last_played=parse_timestamp(data.get("lastPlayed")),
            is_active=data.get("isActive") is not False,
            rank=_optional_int(data.get("rank")) or None,
            manual_rank=_optional_int(data.get("manualRank")) or None,
            status_updated_at=parse_timestamp(data.get("statusUpdatedAt")),
            rank_updated_at=parse_timestamp(data.get("rankUpdatedAt")),
            created_at=parse_timestamp(data.get("createdAt")),
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
            has_play_count=play_count is not None,
            **display,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON representation."""
        data: dict[str, Any] = {"id": self.id}
        for key in _DISPLAY_KEYS:
            data[key] = getattr(self, key)
        data.update(self.extra)
        data.update({
            "playCount": self.play_count,
            "lastPlayed": format_timestamp(self.last_played),
            "isActive": self.is_active,
            "rank": self.rank,
            "createdAt": format_timestamp(self.created_at),
        })
        # Optional audit/pin fields are omitted rather than written as null
        if self.manual_rank is not None:
            data["manualRank"] = self.manual_rank
        if self.status_updated_at is not None:
            data["statusUpdatedAt"] = format_timestamp(self.status_updated_at)
        if self.rank_updated_at is not None:
            data["rankUpdatedAt"] = format_timestamp(self.rank_updated_at)
        return data


@dataclass(frozen=True)
class GameCollection:
    """Insertion-ordered, id-unique set of games plus the document's other keys."""
    games: tuple[GameRecord, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for game in self.games:
            if game.id in seen:
                raise ValueError(f"Duplicate game id in collection: {game.id}")
            seen.add(game.id)

    def __iter__(self) -> Iterator[GameRecord]:
        return iter(self.games)

    def __len__(self) -> int:
        return len(self.games)

    def find(self, game_id: str) -> GameRecord | None:
        for game in self.games:
            if game.id == game_id:
                return game
        return None

    def with_games(self, games: list[GameRecord] | tuple[GameRecord, ...]) -> "GameCollection":
        """Return a collection with the same metadata and a new game list."""
        return replace(self, games=tuple(games))

    @classmethod
    def from_document(cls, document: Any) -> "GameCollection":
        """Parse a stored document: a bare list of games or ``{"games": [...]}``.

        Raises:
            UnrecognizedDocumentError: If the document has neither shape
            ValueError: If a game is malformed or ids repeat
        """
        if isinstance(document, list):
            return cls(games=_parse_games(document))
        if isinstance(document, dict) and isinstance(document.get("games"), list):
            metadata = {k: v for k, v in document.items() if k != "games"}
            return cls(games=_parse_games(document["games"]), metadata=metadata)
        raise UnrecognizedDocumentError(f"Unrecognized game document of type {type(document).__name__}")

    def to_document(self) -> dict[str, Any]:
        """Serialize to the object-shaped stored document."""
        return {**self.metadata, "games": [game.to_dict() for game in self.games]}


def _parse_games(items: list[Any]) -> tuple[GameRecord, ...]:
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"Expected a game object, got {type(item).__name__}")
    return tuple(GameRecord.from_dict(item) for item in items)
