"""Ranking query options and operation result models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from .game import GameCollection, GameRecord, format_timestamp


class SortField(Enum):
    """Fields a ranked listing can be ordered by."""
    RANK = "rank"
    PLAY_COUNT = "playCount"
    NAME = "name"
    LAST_PLAYED = "lastPlayed"

    @classmethod
    def parse(cls, value: "str | SortField | None") -> "SortField":
        """Parse a sort field, falling back to rank for unknown values."""
        if isinstance(value, SortField):
            return value
        for member in cls:
            if member.value == value:
                return member
        return cls.RANK


class SortOrder(Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: "str | SortOrder | None") -> "SortOrder":
        if isinstance(value, SortOrder):
            return value
        return cls.DESC if value == cls.DESC.value else cls.ASC


@dataclass(frozen=True)
class RankingQuery:
    """Options for listing ranked games."""
    active_only: bool = False
    sort_by: SortField = SortField.RANK
    sort_order: SortOrder = SortOrder.ASC


@dataclass(frozen=True)
class MutationOutcome:
    """Result of a pure engine mutation: the touched record and the collection to persist."""
    record: GameRecord
    collection: GameCollection


@dataclass(frozen=True)
class PlayResult:
    record: GameRecord
    total_plays: int
    rank: int | None

    def to_dict(self) -> dict[str, Any]:
        return {"game": self.record.to_dict(), "totalPlays": self.total_plays, "rank": self.rank}


@dataclass(frozen=True)
class StatusResult:
    record: GameRecord
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"game": self.record.to_dict(), "message": self.message}


@dataclass(frozen=True)
class RankResult:
    record: GameRecord
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"game": self.record.to_dict(), "message": self.message}


@dataclass(frozen=True)
class StatisticsSummary:
    """Aggregate play statistics over a collection."""
    total_games: int
    active_games: int
    inactive_games: int
    total_plays: int
    most_played_game: GameRecord | None
    average_plays_per_game: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalGames": self.total_games,
            "activeGames": self.active_games,
            "inactiveGames": self.inactive_games,
            "totalPlays": self.total_plays,
            "mostPlayedGame": self.most_played_game.to_dict() if self.most_played_game else None,
            "averagePlaysPerGame": self.average_plays_per_game,
        }


@dataclass(frozen=True)
class RecalculationResult:
    total_games: int
    recalculated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalGames": self.total_games,
            "recalculatedAt": format_timestamp(self.recalculated_at),
        }


@dataclass(frozen=True)
class MigrationResult:
    """Outcome of bringing a legacy collection onto the ranking fields."""
    migrated_count: int
    total_games: int
    top_games: list[GameRecord]

    def to_dict(self) -> dict[str, Any]:
        return {
            "migrated": self.migrated_count,
            "total": self.total_games,
            "topGames": [game.to_dict() for game in self.top_games],
        }
