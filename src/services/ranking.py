"""Pure ranking engine for game collections.

Every function here takes an immutable GameCollection (plus a mutation
intent) and returns new values; nothing in this module touches storage.
Persisting the returned collection is the caller's job.

Ranking rules:
- Active games are ordered by play count (descending), ties broken by the
  most recent play; a game that was never played counts as the oldest.
- Ranks are dense and start at 1.
- Inactive games that were never ranked share a single overflow rank placed
  after all active ranks.
- A manual rank pins a game; automatically ranked games skip every pinned
  value. Two games pinned to the same rank both keep it.
"""

import math
from dataclasses import replace
from datetime import datetime

import structlog

from ..models.game import GameCollection, GameRecord, utc_now
from ..models.ranking import (
    MutationOutcome,
    RankingQuery,
    SortField,
    SortOrder,
    StatisticsSummary,
)
from .errors import GameNotFoundError, InvalidArgumentError

log = structlog.stdlib.get_logger()


def _play_order_key(game: GameRecord) -> tuple[int, float]:
    """Sort key giving more plays first, then the most recent play first."""
    last_played = game.last_played.timestamp() if game.last_played else -math.inf
    return (-game.play_count, -last_played)


def sort_by_plays(games: list[GameRecord] | tuple[GameRecord, ...]) -> list[GameRecord]:
    """Stable sort by play count desc, then last played desc."""
    return sorted(games, key=_play_order_key)


def recompute_ranks(collection: GameCollection) -> GameCollection:
    """Assign dense ranks to active games, ignoring manual pins.

    Output order is the ranked active games followed by the inactive games in
    their original relative order.
    """
    active = [game for game in collection if game.is_active]
    inactive = [game for game in collection if not game.is_active]

    ranked = [replace(game, rank=index + 1) for index, game in enumerate(sort_by_plays(active))]
    overflow_rank = len(ranked) + 1
    # Only never-ranked inactive games take the overflow rank. A game deactivated
    # after being ranked keeps its old rank, which may now equal an active
    # game's rank (e.g. A=1 deactivated among A,B,C leaves {B: 1, C: 2, A: 1}).
    tail = [game if game.rank is not None else replace(game, rank=overflow_rank) for game in inactive]

    return collection.with_games(ranked + tail)


def recompute_ranks_with_overrides(collection: GameCollection) -> GameCollection:
    """Assign ranks around manual pins.

    Pinned games take their manual rank; every other game, active or not, is
    ordered by plays and given the lowest rank not already claimed. The
    result is ordered by final rank.
    """
    pinned = [game for game in collection if game.manual_rank is not None]
    auto = sort_by_plays([game for game in collection if game.manual_rank is None])

    claimed = {game.manual_rank for game in pinned}
    counter = 1
    auto_ranked: list[GameRecord] = []
    for game in auto:
        while counter in claimed:
            counter += 1
        auto_ranked.append(replace(game, rank=counter))
        claimed.add(counter)
        counter += 1

    pinned_ranked = [replace(game, rank=game.manual_rank) for game in pinned]
    combined = pinned_ranked + auto_ranked
    return collection.with_games(sorted(combined, key=lambda game: game.rank))


def recompute(collection: GameCollection) -> GameCollection:
    """Recompute all ranks, honouring manual pins when any game carries one."""
    if any(game.manual_rank is not None for game in collection):
        return recompute_ranks_with_overrides(collection)
    return recompute_ranks(collection)


def _require_game_id(game_id: str) -> None:
    if not isinstance(game_id, str) or not game_id:
        raise InvalidArgumentError("Game ID is required", field="gameId", value=game_id)


def validate_active_flag(is_active: object) -> None:
    if not isinstance(is_active, bool):
        raise InvalidArgumentError("isActive must be a boolean", field="isActive", value=is_active)


def validate_manual_rank(rank: object) -> None:
    if isinstance(rank, bool) or not isinstance(rank, int) or rank < 1:
        raise InvalidArgumentError(
            "Rank must be a positive integer",
            field="rank",
            value=rank,
            constraints=["rank >= 1"],
        )


def _replace_game(collection: GameCollection, updated: GameRecord) -> GameCollection:
    return collection.with_games([updated if game.id == updated.id else game for game in collection])


def _apply(collection: GameCollection, game_id: str, **changes: object) -> GameCollection:
    """Return the collection with `changes` applied to one game.

    Raises:
        GameNotFoundError: If no game has `game_id`
    """
    game = collection.find(game_id)
    if game is None:
        raise GameNotFoundError(game_id)
    return _replace_game(collection, replace(game, **changes))


def _outcome(collection: GameCollection, game_id: str) -> MutationOutcome:
    record = collection.find(game_id)
    if record is None:
        raise GameNotFoundError(game_id)
    return MutationOutcome(record=record, collection=collection)


def record_play(collection: GameCollection, game_id: str, now: datetime | None = None) -> MutationOutcome:
    """Count one play of a game and re-rank the collection."""
    _require_game_id(game_id)
    game = collection.find(game_id)
    if game is None:
        raise GameNotFoundError(game_id)

    played = _replace_game(
        collection,
        replace(game, play_count=game.play_count + 1, last_played=now or utc_now()),
    )
    outcome = _outcome(recompute(played), game_id)
    log.debug("Play recorded", game_id=game_id, play_count=outcome.record.play_count, rank=outcome.record.rank)
    return outcome


def set_active_status(
    collection: GameCollection,
    game_id: str,
    is_active: bool,
    now: datetime | None = None,
) -> MutationOutcome:
    """Activate or deactivate a game and re-rank the collection."""
    _require_game_id(game_id)
    validate_active_flag(is_active)

    updated = _apply(collection, game_id, is_active=is_active, status_updated_at=now or utc_now())
    return _outcome(recompute(updated), game_id)


def set_manual_rank(
    collection: GameCollection,
    game_id: str,
    rank: int,
    now: datetime | None = None,
) -> MutationOutcome:
    """Pin a game to `rank` and shift automatically ranked games around it."""
    _require_game_id(game_id)
    validate_manual_rank(rank)

    pinned = _apply(collection, game_id, manual_rank=rank, rank=rank, rank_updated_at=now or utc_now())
    return _outcome(recompute_ranks_with_overrides(pinned), game_id)


def _rank_or_last(game: GameRecord) -> float:
    return game.rank if game.rank is not None else math.inf


def get_top_games(collection: GameCollection, limit: int, active_only: bool = True) -> list[GameRecord]:
    """Return the `limit` best-ranked games; unranked games sort last."""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise InvalidArgumentError("Limit must be a non-negative integer", field="limit", value=limit)
    if limit == 0:
        return []

    games = [game for game in collection if game.is_active or not active_only]
    return sorted(games, key=_rank_or_last)[:limit]


def _sort_value(game: GameRecord, sort_by: SortField) -> object:
    match sort_by:
        case SortField.PLAY_COUNT:
            return game.play_count
        case SortField.NAME:
            return game.name or None
        case SortField.LAST_PLAYED:
            return game.last_played
        case _:
            return game.rank


def get_all_ranked(collection: GameCollection, query: RankingQuery | None = None) -> list[GameRecord]:
    """List games in the requested order without touching ranks.

    Missing values sort last in ascending order and first in descending
    order.
    """
    query = query or RankingQuery()
    sort_by = SortField.parse(query.sort_by)
    descending = SortOrder.parse(query.sort_order) is SortOrder.DESC

    games = [game for game in collection if game.is_active or not query.active_only]
    present = [game for game in games if _sort_value(game, sort_by) is not None]
    missing = [game for game in games if _sort_value(game, sort_by) is None]

    ordered = sorted(present, key=lambda game: _sort_value(game, sort_by), reverse=descending)
    return missing + ordered if descending else ordered + missing


def initialize_ranking(record: GameRecord, now: datetime | None = None) -> GameRecord:
    """Give a newly created game its default ranking state."""
    if not record.id:
        raise InvalidArgumentError("Game object with ID is required", field="id", value=record.id)
    return replace(
        record,
        play_count=0,
        rank=1,
        is_active=True,
        last_played=None,
        created_at=now or utc_now(),
        manual_rank=None,
        has_play_count=True,
    )


def get_statistics(collection: GameCollection) -> StatisticsSummary:
    """Summarize play counts over the whole collection."""
    total = len(collection)
    active = sum(1 for game in collection if game.is_active)
    total_plays = sum(game.play_count for game in collection)

    most_played: GameRecord | None = None
    for game in collection:
        if game.play_count > (most_played.play_count if most_played else 0):
            most_played = game

    # Round half up
    average = math.floor(total_plays / total + 0.5) if total else 0

    return StatisticsSummary(
        total_games=total,
        active_games=active,
        inactive_games=total - active,
        total_plays=total_plays,
        most_played_game=most_played,
        average_plays_per_game=average,
    )


def migrate_collection(collection: GameCollection, now: datetime | None = None) -> tuple[GameCollection, int]:
    """Initialize ranking state on games that lack it, then re-rank.

    Returns:
        The re-ranked collection and the number of games that were initialized
    """
    migrated = 0
    games: list[GameRecord] = []
    for game in collection:
        if game.has_ranking_data:
            games.append(game)
            continue
        games.append(initialize_ranking(game, now=now))
        migrated += 1

    return recompute(collection.with_games(games)), migrated
