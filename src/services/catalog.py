"""Game catalogue service for adding, looking up, updating and removing games."""

import re
import time
from dataclasses import replace

import structlog

from ..models.game import GameRecord
from . import ranking
from .errors import GameNotFoundError, InvalidArgumentError
from .ranking_service import GameRankingService

log = structlog.stdlib.get_logger()


def slugify(name: str) -> str:
    """Lowercase `name`, turn non-alphanumeric runs into single dashes, trim dashes."""
    slug = re.sub(r"[^a-z0-9]", "-", name.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class GameCatalogService:
    """Creates and deletes games on top of the ranking service's store."""

    def __init__(self, ranking_service: GameRankingService) -> None:
        self.ranking_service = ranking_service

    async def add_game(
        self,
        name: str,
        game_id: str | None = None,
        slug: str | None = None,
        description: str = "",
        category: str = "",
        thumb_url: str = "",
        logo_url: str | None = None,
        gif_url: str = "",
        play_url: str = "",
        size: str = "small",
    ) -> GameRecord:
        """Create a game with default ranking state, re-rank and persist.

        Args:
            name: Display name (required)
            game_id: Explicit id; generated as ``game_<epoch millis>`` when omitted
            slug: URL slug; derived from the name when omitted
            logo_url: Defaults to the thumbnail URL

        Raises:
            InvalidArgumentError: If the name is empty or the id is taken
        """
        if not name or not name.strip():
            raise InvalidArgumentError("Game name is required", field="name", value=name)

        collection = await self.ranking_service.load()
        game_id = game_id or f"game_{int(time.time() * 1000)}"
        if collection.find(game_id) is not None:
            raise InvalidArgumentError(f"Game with ID {game_id} already exists", field="id", value=game_id)

        record = ranking.initialize_ranking(GameRecord(
            id=game_id,
            name=name,
            slug=slug or slugify(name),
            description=description,
            category=category,
            thumb_url=thumb_url,
            logo_url=logo_url if logo_url is not None else thumb_url,
            gif_url=gif_url,
            play_url=play_url,
            size=size,
        ))

        updated = ranking.recompute(collection.with_games(collection.games + (record,)))
        await self.ranking_service.save(updated)

        added = updated.find(game_id) or record
        log.info("Game added", game_id=game_id, name=name, rank=added.rank)
        return added

    async def get_game(self, game_id: str) -> GameRecord:
        game = (await self.ranking_service.load()).find(game_id)
        if game is None:
            raise GameNotFoundError(game_id)
        return game

    async def update_game(
        self,
        game_id: str,
        name: str | None = None,
        slug: str | None = None,
        description: str | None = None,
        category: str | None = None,
        thumb_url: str | None = None,
        logo_url: str | None = None,
        gif_url: str | None = None,
        play_url: str | None = None,
        size: str | None = None,
    ) -> GameRecord:
        """Replace a game's display fields and persist.

        Fields left as None or empty keep their stored value. A new name
        without an explicit slug re-derives the slug. The id and all ranking
        state (plays, ranks, pins, timestamps) are kept.

        Raises:
            GameNotFoundError: If no game has `game_id`
        """
        collection = await self.ranking_service.load()
        game = collection.find(game_id)
        if game is None:
            raise GameNotFoundError(game_id)

        updated = replace(
            game,
            name=name or game.name,
            slug=slug or (slugify(name) if name else "") or game.slug,
            description=description or game.description,
            category=category or game.category,
            thumb_url=thumb_url or game.thumb_url,
            logo_url=logo_url or game.logo_url,
            gif_url=gif_url or game.gif_url,
            play_url=play_url or game.play_url,
            size=size or game.size,
        )
        await self.ranking_service.save(
            collection.with_games([updated if g.id == game_id else g for g in collection])
        )

        log.info("Game updated", game_id=game_id, name=updated.name)
        return updated


    async def remove_game(self, game_id: str) -> GameRecord:
        """Delete a game, re-rank the rest and persist; returns the removed game."""
        collection = await self.ranking_service.load()
        game = collection.find(game_id)
        if game is None:
            raise GameNotFoundError(game_id)

        remaining = collection.with_games([g for g in collection if g.id != game_id])
        await self.ranking_service.save(ranking.recompute(remaining))

        log.info("Game removed", game_id=game_id, name=game.name)
        return game
