"""Property-based and example tests for the pure ranking engine."""

from datetime import datetime, timedelta, timezone

import pytest
from hypothesis import assume, given, strategies as st

from src.models import GameCollection, GameRecord, RankingQuery, SortField, SortOrder
from src.services.errors import GameNotFoundError, InvalidArgumentError
from src.services import ranking


BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def make_game(game_id: str, play_count: int = 0, **kwargs: object) -> GameRecord:
    return GameRecord(id=game_id, name=game_id.upper(), play_count=play_count, **kwargs)  # type: ignore[arg-type]


def ranks(collection: GameCollection) -> dict[str, int | None]:
    return {game.id: game.rank for game in collection}


# Strategies for generating collections
optional_times = st.one_of(
    st.none(),
    st.integers(min_value=0, max_value=10_000).map(lambda minutes: BASE_TIME + timedelta(minutes=minutes)),
)

game_states = st.tuples(
    st.integers(min_value=0, max_value=50),  # play count
    optional_times,
    st.booleans(),  # active
)


def build_collection(states: list[tuple[int, datetime | None, bool]]) -> GameCollection:
    return GameCollection(games=tuple(
        GameRecord(id=f"game-{index}", play_count=plays, last_played=last, is_active=active)
        for index, (plays, last, active) in enumerate(states)
    ))


collections = st.lists(game_states, max_size=25).map(build_collection)


@st.composite
def pinned_collections(draw: st.DrawFn) -> tuple[GameCollection, set[int]]:
    """Collections where some games carry distinct manual ranks."""
    states = draw(st.lists(game_states, min_size=1, max_size=20))
    pinned_indexes = draw(st.sets(st.integers(min_value=0, max_value=len(states) - 1)))
    pins = draw(st.lists(
        st.integers(min_value=1, max_value=30),
        min_size=len(pinned_indexes),
        max_size=len(pinned_indexes),
        unique=True,
    ))
    pin_for = dict(zip(sorted(pinned_indexes), pins))
    games = tuple(
        GameRecord(
            id=f"game-{index}",
            play_count=plays,
            last_played=last,
            is_active=active,
            manual_rank=pin_for.get(index),
        )
        for index, (plays, last, active) in enumerate(states)
    )
    return GameCollection(games=games), set(pins)


@given(collections)
def test_active_ranks_are_dense(collection: GameCollection) -> None:
    """Without manual ranks, active games are ranked exactly 1..N."""
    result = ranking.recompute_ranks(collection)

    active_ranks = sorted(game.rank for game in result if game.is_active)
    assert active_ranks == list(range(1, len(active_ranks) + 1))


@given(collections)
def test_more_recent_play_wins_ties(collection: GameCollection) -> None:
    result = ranking.recompute_ranks(collection)
    active = [game for game in result if game.is_active]

    for first in active:
        for second in active:
            if first.play_count != second.play_count:
                continue
            first_time = first.last_played or datetime.min.replace(tzinfo=timezone.utc)
            second_time = second.last_played or datetime.min.replace(tzinfo=timezone.utc)
            if first_time > second_time:
                assert first.rank < second.rank


@given(collections)
def test_more_plays_rank_higher(collection: GameCollection) -> None:
    result = ranking.recompute_ranks(collection)
    active = [game for game in result if game.is_active]

    for first in active:
        for second in active:
            if first.play_count > second.play_count:
                assert first.rank < second.rank


@given(collections)
def test_never_ranked_inactive_games_share_overflow_rank(collection: GameCollection) -> None:
    result = ranking.recompute_ranks(collection)
    active_count = sum(1 for game in result if game.is_active)

    for game in result:
        if not game.is_active:
            assert game.rank == active_count + 1


@given(collections)
def test_output_lists_active_then_inactive(collection: GameCollection) -> None:
    result = ranking.recompute_ranks(collection)
    flags = [game.is_active for game in result]

    assert flags == sorted(flags, reverse=True)
    original_inactive = [game.id for game in collection if not game.is_active]
    assert [game.id for game in result if not game.is_active] == original_inactive


@given(pinned_collections())
def test_auto_ranks_avoid_manual_ranks(data: tuple[GameCollection, set[int]]) -> None:
    collection, pins = data
    result = ranking.recompute_ranks_with_overrides(collection)

    auto_ranks = [game.rank for game in result if game.manual_rank is None]
    assert not set(auto_ranks) & pins
    assert len(auto_ranks) == len(set(auto_ranks))
    for game in result:
        if game.manual_rank is not None:
            assert game.rank == game.manual_rank


@given(pinned_collections())
def test_override_result_is_sorted_by_rank(data: tuple[GameCollection, set[int]]) -> None:
    collection, _ = data
    result = ranking.recompute_ranks_with_overrides(collection)

    result_ranks = [game.rank for game in result]
    assert result_ranks == sorted(result_ranks)
    assert {game.id for game in result} == {game.id for game in collection}


@given(collections)
def test_recompute_is_idempotent(collection: GameCollection) -> None:
    once = ranking.recompute(collection)
    twice = ranking.recompute(once)

    assert ranks(twice) == ranks(once)


@given(pinned_collections())
def test_recompute_with_overrides_is_idempotent(data: tuple[GameCollection, set[int]]) -> None:
    collection, _ = data
    once = ranking.recompute(collection)

    assert ranks(ranking.recompute(once)) == ranks(once)


@given(collections, st.data())
def test_record_play_increments_only_target(collection: GameCollection, data: st.DataObject) -> None:
    assume(len(collection) > 0)
    target = data.draw(st.sampled_from([game.id for game in collection]))
    before = {game.id: game.play_count for game in collection}

    outcome = ranking.record_play(collection, target)

    after = {game.id: game.play_count for game in outcome.collection}
    assert after[target] == before[target] + 1
    for game_id, count in before.items():
        if game_id != target:
            assert after[game_id] == count
    assert outcome.record.id == target


@given(collections)
def test_recompute_does_not_mutate_input(collection: GameCollection) -> None:
    snapshot = [(game.id, game.rank) for game in collection]
    ranking.recompute(collection)

    assert [(game.id, game.rank) for game in collection] == snapshot


class TestScenarios:
    """Worked examples of each engine operation."""

    def test_higher_play_count_ranks_first(self) -> None:
        collection = GameCollection(games=(make_game("a", 5), make_game("b", 10)))

        result = ranking.recompute(collection)

        assert ranks(result) == {"b": 1, "a": 2}
        assert [game.id for game in result] == ["b", "a"]

    def test_first_play(self) -> None:
        collection = GameCollection(games=(make_game("a", 0),))

        outcome = ranking.record_play(collection, "a")

        assert outcome.record.play_count == 1
        assert outcome.record.rank == 1
        assert outcome.record.last_played is not None

    def test_manual_rank_shifts_auto_ranked_game(self) -> None:
        collection = GameCollection(games=(make_game("a", 10), make_game("b", 1)))

        outcome = ranking.set_manual_rank(collection, "b", 1)

        assert outcome.record.rank == 1
        assert outcome.record.manual_rank == 1
        assert outcome.record.rank_updated_at is not None
        assert ranks(outcome.collection) == {"b": 1, "a": 2}

    def test_deactivated_unranked_game_takes_overflow_rank(self) -> None:
        collection = GameCollection(games=(make_game("a", 9), make_game("b", 5), make_game("c", 1)))

        outcome = ranking.set_active_status(collection, "a", False)

        assert outcome.record.is_active is False
        assert outcome.record.rank == 3
        assert outcome.record.status_updated_at is not None
        assert ranks(outcome.collection) == {"b": 1, "c": 2, "a": 3}
        assert outcome.collection.games[-1].id == "a"

    def test_deactivated_game_keeps_existing_rank(self) -> None:
        collection = ranking.recompute(GameCollection(games=(make_game("a", 9), make_game("b", 5))))

        outcome = ranking.set_active_status(collection, "a", False)

        assert outcome.record.rank == 1
        assert ranks(outcome.collection) == {"b": 1, "a": 1}

    def test_top_games_with_zero_limit_is_empty(self) -> None:
        collection = ranking.recompute(GameCollection(games=(make_game("a", 3), make_game("b", 2))))

        assert ranking.get_top_games(collection, 0, True) == []

    def test_manual_ranks_survive_later_plays(self) -> None:
        collection = GameCollection(games=(make_game("a", 10), make_game("b", 1)))
        pinned = ranking.set_manual_rank(collection, "b", 1).collection

        outcome = ranking.record_play(pinned, "a")

        assert ranks(outcome.collection) == {"b": 1, "a": 2}

    def test_duplicate_manual_ranks_are_kept(self) -> None:
        collection = GameCollection(games=(
            make_game("a", 1, manual_rank=1),
            make_game("b", 2, manual_rank=1),
            make_game("c", 3),
        ))

        result = ranking.recompute(collection)

        assert ranks(result) == {"a": 1, "b": 1, "c": 2}

    def test_inactive_games_compete_when_ranks_are_pinned(self) -> None:
        collection = GameCollection(games=(
            make_game("a", 1, manual_rank=2),
            make_game("b", 50, is_active=False),
            make_game("c", 3),
        ))

        result = ranking.recompute(collection)

        assert ranks(result) == {"b": 1, "a": 2, "c": 3}

    def test_never_played_games_rank_after_played_ties(self) -> None:
        collection = GameCollection(games=(
            make_game("never", 2),
            make_game("old", 2, last_played=BASE_TIME),
            make_game("new", 2, last_played=BASE_TIME + timedelta(days=1)),
        ))

        result = ranking.recompute(collection)

        assert ranks(result) == {"new": 1, "old": 2, "never": 3}


class TestFailures:
    """Rejected mutations leave the input untouched."""

    def test_unknown_game_is_not_found(self) -> None:
        collection = GameCollection(games=(make_game("a"),))

        with pytest.raises(GameNotFoundError) as exc_info:
            ranking.record_play(collection, "missing")

        assert exc_info.value.game_id == "missing"
        assert exc_info.value.status_code == 404
        assert collection.games[0].play_count == 0

    @pytest.mark.parametrize("operation", ["status", "rank"])
    def test_unknown_game_for_other_mutations(self, operation: str) -> None:
        collection = GameCollection(games=(make_game("a"),))

        with pytest.raises(GameNotFoundError):
            if operation == "status":
                ranking.set_active_status(collection, "missing", False)
            else:
                ranking.set_manual_rank(collection, "missing", 1)

    @pytest.mark.parametrize("bad_rank", [0, -3, 1.5, "2", True, None])
    def test_invalid_manual_rank(self, bad_rank: object) -> None:
        collection = GameCollection(games=(make_game("a"),))

        with pytest.raises(InvalidArgumentError) as exc_info:
            ranking.set_manual_rank(collection, "a", bad_rank)  # type: ignore[arg-type]

        assert exc_info.value.status_code == 400
        assert exc_info.value.field == "rank"

    def test_invalid_rank_checked_before_lookup(self) -> None:
        with pytest.raises(InvalidArgumentError):
            ranking.set_manual_rank(GameCollection(), "missing", 0)

    def test_missing_game_id(self) -> None:
        with pytest.raises(InvalidArgumentError):
            ranking.record_play(GameCollection(games=(make_game("a"),)), "")

    def test_negative_top_limit(self) -> None:
        with pytest.raises(InvalidArgumentError):
            ranking.get_top_games(GameCollection(), -1)

    def test_result_record_missing_from_collection_is_not_found(self) -> None:
        with pytest.raises(GameNotFoundError):
            ranking._outcome(GameCollection(games=(make_game("a"),)), "gone")

    @pytest.mark.parametrize("flag", [None, 1, "false"])
    def test_active_flag_must_be_boolean(self, flag: object) -> None:
        with pytest.raises(InvalidArgumentError) as exc_info:
            ranking.validate_active_flag(flag)

        assert exc_info.value.field == "isActive"


class TestQueries:
    """Read-only listing and statistics."""

    def setup_method(self) -> None:
        self.collection = GameCollection(games=(
            make_game("alpha", 4, rank=2, last_played=BASE_TIME),
            make_game("bravo", 9, rank=1, last_played=BASE_TIME + timedelta(hours=1)),
            make_game("charlie", 0, rank=None, is_active=False),
            make_game("delta", 1, rank=3, is_active=False),
        ))

    def test_top_games_active_only(self) -> None:
        top = ranking.get_top_games(self.collection, 5, active_only=True)

        assert [game.id for game in top] == ["bravo", "alpha"]

    def test_top_games_unranked_sort_last(self) -> None:
        top = ranking.get_top_games(self.collection, 10, active_only=False)

        assert [game.id for game in top] == ["bravo", "alpha", "delta", "charlie"]

    def test_top_games_respects_limit(self) -> None:
        assert len(ranking.get_top_games(self.collection, 1, active_only=False)) == 1

    def test_all_ranked_defaults_to_rank_ascending(self) -> None:
        games = ranking.get_all_ranked(self.collection)

        assert [game.id for game in games] == ["bravo", "alpha", "delta", "charlie"]

    def test_all_ranked_by_play_count_descending(self) -> None:
        query = RankingQuery(sort_by=SortField.PLAY_COUNT, sort_order=SortOrder.DESC)

        games = ranking.get_all_ranked(self.collection, query)

        assert [game.id for game in games] == ["bravo", "alpha", "delta", "charlie"]

    def test_all_ranked_by_name(self) -> None:
        query = RankingQuery(active_only=True, sort_by=SortField.NAME)

        assert [game.id for game in ranking.get_all_ranked(self.collection, query)] == ["alpha", "bravo"]

    def test_all_ranked_missing_last_played(self) -> None:
        ascending = ranking.get_all_ranked(self.collection, RankingQuery(sort_by=SortField.LAST_PLAYED))
        descending = ranking.get_all_ranked(
            self.collection,
            RankingQuery(sort_by=SortField.LAST_PLAYED, sort_order=SortOrder.DESC),
        )

        assert [game.id for game in ascending] == ["alpha", "bravo", "charlie", "delta"]
        assert [game.id for game in descending] == ["charlie", "delta", "bravo", "alpha"]

    def test_unknown_sort_field_falls_back_to_rank(self) -> None:
        assert SortField.parse("popularity") is SortField.RANK
        assert SortOrder.parse("sideways") is SortOrder.ASC

    def test_statistics(self) -> None:
        stats = ranking.get_statistics(self.collection)

        assert stats.total_games == 4
        assert stats.active_games == 2
        assert stats.inactive_games == 2
        assert stats.total_plays == 14
        assert stats.most_played_game is not None
        assert stats.most_played_game.id == "bravo"
        assert stats.average_plays_per_game == 4  # 3.5 rounds half up

    def test_statistics_without_plays(self) -> None:
        stats = ranking.get_statistics(GameCollection(games=(make_game("a"), make_game("b"))))

        assert stats.most_played_game is None
        assert stats.average_plays_per_game == 0

    def test_statistics_for_empty_collection(self) -> None:
        stats = ranking.get_statistics(GameCollection())

        assert stats.total_games == 0
        assert stats.average_plays_per_game == 0

    def test_queries_do_not_change_ranks(self) -> None:
        ranking.get_all_ranked(self.collection, RankingQuery(sort_by=SortField.NAME))

        assert ranks(self.collection) == {"alpha": 2, "bravo": 1, "charlie": None, "delta": 3}


class TestInitialization:
    def test_initialize_ranking_defaults(self) -> None:
        record = GameRecord(id="new", name="New", play_count=7, rank=4, manual_rank=2, is_active=False)

        initialized = ranking.initialize_ranking(record)

        assert initialized.play_count == 0
        assert initialized.rank == 1
        assert initialized.is_active is True
        assert initialized.last_played is None
        assert initialized.manual_rank is None
        assert initialized.created_at is not None
        assert initialized.name == "New"
        assert record.play_count == 7

    def test_initialize_ranking_requires_id(self) -> None:
        with pytest.raises(InvalidArgumentError):
            ranking.initialize_ranking(GameRecord(id=""))

    def test_migrate_only_touches_games_without_ranking_data(self) -> None:
        legacy = GameRecord.from_dict({"id": "legacy", "name": "Legacy"})
        ranked = GameRecord.from_dict({"id": "ranked", "playCount": 3, "rank": 1})

        migrated, count = ranking.migrate_collection(GameCollection(games=(legacy, ranked)))

        assert count == 1
        assert ranks(migrated) == {"ranked": 1, "legacy": 2}
        legacy_after = migrated.find("legacy")
        assert legacy_after is not None and legacy_after.created_at is not None
