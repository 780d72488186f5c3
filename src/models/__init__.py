"""Data models for the game ranking backend."""

from .config import AppConfig
from .game import GameCollection, GameRecord
from .ranking import (
    MigrationResult,
    MutationOutcome,
    PlayResult,
    RankingQuery,
    RankResult,
    RecalculationResult,
    SortField,
    SortOrder,
    StatisticsSummary,
    StatusResult,
)

__all__ = [
    "AppConfig",
    "GameCollection",
    "GameRecord",
    "MigrationResult",
    "MutationOutcome",
    "PlayResult",
    "RankingQuery",
    "RankResult",
    "RecalculationResult",
    "SortField",
    "SortOrder",
    "StatisticsSummary",
    "StatusResult",
]
