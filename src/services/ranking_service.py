"""Game ranking service: load, transform and save the game collection.

Each operation is one read-modify-write cycle against the injected game
store. No lock is held across the cycle and the store offers no version
check, so two concurrent mutations race and the later save wins.
"""

from datetime import datetime

import structlog

from ..models.game import GameCollection, GameRecord, utc_now
from ..models.ranking import (
    MigrationResult,
    PlayResult,
    RankingQuery,
    RankResult,
    RecalculationResult,
    StatisticsSummary,
    StatusResult,
)
from . import ranking
from .errors import AppError, StorageFailure
from .store import GameStore

log = structlog.stdlib.get_logger()


class GameRankingService:
    """Play tracking and ranking operations over a persisted game collection."""

    def __init__(self, store: GameStore) -> None:
        self.store = store
        log.info("Game ranking service initialized", store=type(store).__name__)

    async def load(self) -> GameCollection:
        """Load the current collection, wrapping unexpected store errors."""
        try:
            return await self.store.load()
        except AppError:
            raise
        except Exception as e:
            raise StorageFailure("Failed to load game data", original_error=e, operation="load") from e

    async def save(self, collection: GameCollection) -> None:
        try:
            await self.store.save(collection)
        except AppError:
            raise
        except Exception as e:
            raise StorageFailure("Failed to save game data", original_error=e, operation="save") from e

    async def record_play(self, game_id: str) -> PlayResult:
        """Count a play of `game_id`, re-rank and persist."""
        log.info("Tracking play", game_id=game_id)

        outcome = ranking.record_play(await self.load(), game_id)
        await self.save(outcome.collection)

        record = outcome.record
        log.info("Game play tracked", game_id=game_id, play_count=record.play_count, rank=record.rank)
        return PlayResult(record=record, total_plays=record.play_count, rank=record.rank)

    async def set_active_status(self, game_id: str, is_active: bool) -> StatusResult:
        ranking.validate_active_flag(is_active)
        log.info("Updating game status", game_id=game_id, is_active=is_active)

        outcome = ranking.set_active_status(await self.load(), game_id, is_active)
        await self.save(outcome.collection)

        message = f"Game {'activated' if is_active else 'deactivated'} successfully"
        log.info("Game status updated", game_id=game_id, rank=outcome.record.rank)
        return StatusResult(record=outcome.record, message=message)

    async def set_manual_rank(self, game_id: str, rank: int) -> RankResult:
        """Pin `game_id` to `rank` (admin override), re-rank and persist."""
        ranking.validate_manual_rank(rank)
        log.info("Setting manual rank", game_id=game_id, rank=rank)

        outcome = ranking.set_manual_rank(await self.load(), game_id, rank)
        await self.save(outcome.collection)

        log.info("Manual rank set", game_id=game_id, rank=rank)
        return RankResult(record=outcome.record, message=f"Game rank set to {rank}")

    async def get_top_games(self, limit: int = 5, active_only: bool = True) -> list[GameRecord]:
        return ranking.get_top_games(await self.load(), limit, active_only)

    async def get_all_ranked(self, query: RankingQuery | None = None) -> list[GameRecord]:
        return ranking.get_all_ranked(await self.load(), query)

    async def get_statistics(self) -> StatisticsSummary:
        return ranking.get_statistics(await self.load())

    def initialize_ranking(self, record: GameRecord) -> GameRecord:
        """Attach default ranking state to a new game; the caller persists it."""
        return ranking.initialize_ranking(record)

    async def recalculate(self, now: datetime | None = None) -> RecalculationResult:
        """Recompute every rank from scratch and persist."""
        collection = ranking.recompute(await self.load())
        await self.save(collection)

        log.info("Rankings recalculated", total_games=len(collection))
        return RecalculationResult(total_games=len(collection), recalculated_at=now or utc_now())

    async def migrate(self) -> MigrationResult:
        """Bring games without ranking data onto the ranking fields and persist."""
        collection = await self.load()
        if not len(collection):
            log.warning("No games found to migrate")
            return MigrationResult(migrated_count=0, total_games=0, top_games=[])

        migrated, migrated_count = ranking.migrate_collection(collection)
        await self.save(migrated)

        log.info("Migration completed", migrated=migrated_count, total_games=len(migrated))
        return MigrationResult(
            migrated_count=migrated_count,
            total_games=len(migrated),
            top_games=list(migrated.games[:5]),
        )
