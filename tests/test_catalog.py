"""Tests for the game catalogue service."""

import pytest
from hypothesis import given, strategies as st

from src.services import (
    GameCatalogService,
    GameNotFoundError,
    GameRankingService,
    InMemoryGameStore,
    InvalidArgumentError,
    slugify,
)


def make_catalog(document: object = None) -> tuple[GameCatalogService, InMemoryGameStore]:
    store = InMemoryGameStore(document)
    return GameCatalogService(GameRankingService(store)), store


@pytest.mark.parametrize("name, expected", [
    ("Space Invaders", "space-invaders"),
    ("  Pac--Man!! ", "pac-man"),
    ("Tetris 99", "tetris-99"),
    ("!!!", ""),
])
def test_slugify(name: str, expected: str) -> None:
    assert slugify(name) == expected


@given(st.text(max_size=40))
def test_slugify_output_shape(name: str) -> None:
    slug = slugify(name)

    assert not slug.startswith("-") and not slug.endswith("-")
    assert "--" not in slug
    assert all(ch.isascii() and (ch.isalnum() or ch == "-") for ch in slug)
    assert slug == slug.lower()


@pytest.mark.asyncio
async def test_add_game_initializes_and_persists() -> None:
    catalog, store = make_catalog({"games": [{"id": "old", "playCount": 3, "rank": 1}]})

    record = await catalog.add_game(name="Space Invaders", thumb_url="thumb.png")

    assert record.id.startswith("game_")
    assert record.slug == "space-invaders"
    assert record.logo_url == "thumb.png"
    assert record.play_count == 0
    assert record.created_at is not None
    assert record.rank == 2
    assert [game["id"] for game in store.document["games"]] == ["old", record.id]


@pytest.mark.asyncio
async def test_add_game_with_explicit_fields() -> None:
    catalog, _ = make_catalog()

    record = await catalog.add_game(name="Snake", game_id="snake", slug="classic-snake", logo_url="logo.png")

    assert record.id == "snake"
    assert record.slug == "classic-snake"
    assert record.logo_url == "logo.png"
    assert record.rank == 1


@pytest.mark.asyncio
async def test_add_game_rejects_duplicates_and_blank_names() -> None:
    catalog, store = make_catalog([{"id": "snake", "name": "Snake"}])

    with pytest.raises(InvalidArgumentError):
        await catalog.add_game(name="Snake II", game_id="snake")
    with pytest.raises(InvalidArgumentError):
        await catalog.add_game(name="   ")

    assert store.save_count == 0


@pytest.mark.asyncio
async def test_get_and_remove_game() -> None:
    catalog, store = make_catalog({"games": [
        {"id": "a", "playCount": 9, "rank": 1},
        {"id": "b", "playCount": 1, "rank": 2},
    ]})

    assert (await catalog.get_game("b")).play_count == 1

    removed = await catalog.remove_game("a")

    assert removed.id == "a"
    assert [(game["id"], game["rank"]) for game in store.document["games"]] == [("b", 1)]
    with pytest.raises(GameNotFoundError):
        await catalog.get_game("a")
    with pytest.raises(GameNotFoundError):
        await catalog.remove_game("a")


@pytest.mark.asyncio
async def test_update_game_keeps_ranking_state() -> None:
    catalog, store = make_catalog({"games": [
        {
            "id": "a", "name": "Alpha", "slug": "alpha", "size": "large", "category": "arcade",
            "playCount": 7, "rank": 1, "manualRank": 1, "lastPlayed": "2024-05-01T12:30:00Z",
        },
        {"id": "b", "name": "Bravo", "playCount": 9, "rank": 2},
    ]})

    updated = await catalog.update_game("a", name="Alpha Deluxe", description="Remastered")

    assert updated.id == "a"
    assert updated.name == "Alpha Deluxe"
    assert updated.slug == "alpha-deluxe"
    assert updated.description == "Remastered"
    assert updated.size == "large"
    assert updated.category == "arcade"
    stored = next(game for game in store.document["games"] if game["id"] == "a")
    assert stored["playCount"] == 7
    assert stored["rank"] == 1
    assert stored["manualRank"] == 1
    assert stored["lastPlayed"] == "2024-05-01T12:30:00+00:00"
    assert store.save_count == 1


@pytest.mark.asyncio
async def test_update_game_explicit_slug_and_empty_values() -> None:
    catalog, _ = make_catalog([{"id": "a", "name": "Alpha", "slug": "alpha", "thumb_url": "t.png"}])

    updated = await catalog.update_game("a", name="Alpha 2", slug="a2", thumb_url="")

    assert updated.slug == "a2"
    assert updated.thumb_url == "t.png"


@pytest.mark.asyncio
async def test_update_unknown_game_is_not_found() -> None:
    catalog, store = make_catalog([{"id": "a", "name": "Alpha"}])

    with pytest.raises(GameNotFoundError):
        await catalog.update_game("zzz", name="Nope")

    assert store.save_count == 0
