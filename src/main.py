"""Command-line entry point for the game ranking backend.

This module provides:
- Command-line argument parsing with one subcommand per operation
- Application initialization and dependency injection
- Error reporting with user-friendly messages and exit codes
"""

import argparse
import asyncio
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from src.models import AppConfig, GameRecord, RankingQuery, SortField, SortOrder
from src.services.catalog import GameCatalogService
from src.services.config import ConfigurationService
from src.services.errors import ConfigurationError, handle_error, get_error_service
from src.services.filesystem import FileSystemService
from src.services.http_client import HttpClientService
from src.services.logging import setup_logging
from src.services.ranking_service import GameRankingService
from src.services.store import FileGameStore, GameStore, InMemoryGameStore, ObjectStoreGameStore


VERSION = "0.1.0"

log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services.

    Services are created lazily so commands only build what they use.
    """

    def __init__(self, config_path: Path | None = None, config: AppConfig | None = None) -> None:
        self._config_path: Path | None = config_path
        self._config: AppConfig | None = config

        self._config_service: ConfigurationService | None = None
        self._http_client: HttpClientService | None = None
        self._store: GameStore | None = None
        self._ranking_service: GameRankingService | None = None
        self._catalog: GameCatalogService | None = None

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            if not self.config.object_store_url:
                raise ConfigurationError(
                    "The object store URL is not configured",
                    setting="object_store_url",
                    expected="an http(s) URL, e.g. via GAME_RANKING_OBJECT_URL",
                )
            self._http_client = HttpClientService(
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
                base_url=self.config.object_store_url,
            )
        return self._http_client

    @property
    def store(self) -> GameStore:
        """Get the game store selected by `store_backend`."""
        if self._store is None:
            backend = self.config.store_backend
            if backend == "object":
                self._store = ObjectStoreGameStore(self.http_client, object_key=self.config.object_key)
            elif backend == "memory":
                self._store = InMemoryGameStore()
            else:
                self._store = FileGameStore(self.config.data_file, filesystem=FileSystemService())
            log.debug("Game store selected", backend=backend)
        return self._store

    @property
    def ranking_service(self) -> GameRankingService:
        if self._ranking_service is None:
            self._ranking_service = GameRankingService(self.store)
        return self._ranking_service

    @property
    def catalog(self) -> GameCatalogService:
        if self._catalog is None:
            self._catalog = GameCatalogService(self.ranking_service)
        return self._catalog

    async def cleanup(self) -> None:
        if self._http_client is not None:
            await self._http_client.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="game-ranking",
        description="Play tracking and ranking for a JSON-backed game catalogue",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  game-ranking play space-invaders          Record one play
  game-ranking set-rank space-invaders 1    Pin a game to rank 1
  game-ranking top --limit 10               Show the ten best-ranked games
  GAME_RANKING_STORE=object GAME_RANKING_OBJECT_URL=https://bucket.example.com game-ranking stats
        """
    )

    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/game-ranking/config.json)"
    )
    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: log_level from the configuration)"
    )
    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for rotating log files (default: console only)"
    )
    _ = parser.add_argument(
        "--quiet",
        action="store_true",
        help="Do not write log output to the console"
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    play = commands.add_parser("play", help="Record a play of a game")
    _ = play.add_argument("game_id")

    status = commands.add_parser("status", help="Activate or deactivate a game")
    _ = status.add_argument("game_id")
    toggle = status.add_mutually_exclusive_group(required=True)
    _ = toggle.add_argument("--active", dest="is_active", action="store_true")
    _ = toggle.add_argument("--inactive", dest="is_active", action="store_false")

    set_rank = commands.add_parser("set-rank", help="Pin a game to a rank")
    _ = set_rank.add_argument("game_id")
    _ = set_rank.add_argument("rank", type=int)

    top = commands.add_parser("top", help="Show the best-ranked games")
    _ = top.add_argument("--limit", type=int, default=None, help="Number of games (default from config)")
    _ = top.add_argument("--include-inactive", action="store_true")

    listing = commands.add_parser("list", help="List all games in ranking order")
    _ = listing.add_argument("--active-only", action="store_true")
    _ = listing.add_argument("--sort-by", choices=[f.value for f in SortField], default=SortField.RANK.value)
    _ = listing.add_argument("--sort-order", choices=[o.value for o in SortOrder], default=SortOrder.ASC.value)

    _ = commands.add_parser("stats", help="Show play statistics")
    _ = commands.add_parser("recalculate", help="Recompute every rank")
    _ = commands.add_parser("migrate", help="Add ranking data to games that lack it")

    add = commands.add_parser("add", help="Add a game to the catalogue")
    _ = add.add_argument("--name", required=True)
    _ = add.add_argument("--id", dest="game_id", default=None)
    _ = add.add_argument("--slug", default=None)
    _ = add.add_argument("--description", default="")
    _ = add.add_argument("--category", default="")
    _ = add.add_argument("--thumb-url", default="")
    _ = add.add_argument("--logo-url", default=None)
    _ = add.add_argument("--gif-url", default="")
    _ = add.add_argument("--play-url", default="")
    _ = add.add_argument("--size", default="small")

    show = commands.add_parser("show", help="Show one game")
    _ = show.add_argument("game_id")

    update = commands.add_parser("update", help="Change a game's display fields")
    _ = update.add_argument("game_id")
    _ = update.add_argument("--name", default=None)
    _ = update.add_argument("--slug", default=None)
    _ = update.add_argument("--description", default=None)
    _ = update.add_argument("--category", default=None)
    _ = update.add_argument("--thumb-url", default=None)
    _ = update.add_argument("--logo-url", default=None)
    _ = update.add_argument("--gif-url", default=None)
    _ = update.add_argument("--play-url", default=None)
    _ = update.add_argument("--size", default=None)

    remove = commands.add_parser("remove", help="Remove a game from the catalogue")
    _ = remove.add_argument("game_id")

    config = commands.add_parser("config", help="Show the effective configuration")
    _ = config.add_argument("--save", action="store_true", help="Write it to the configuration file")

    return parser


def _games(records: list[GameRecord]) -> list[dict[str, Any]]:
    return [record.to_dict() for record in records]


async def run_command(args: argparse.Namespace, context: ApplicationContext) -> Any:
    """Dispatch a parsed command and return its JSON-serializable result."""
    if args.command == "config":
        if args.save:
            context.config_service.save_config(context.config)
        return {
            **context.config_service.config_to_dict(context.config),
            "configPath": str(context.config_service.config_path),
            "saved": args.save,
        }

    service = context.ranking_service

    match args.command:
        case "play":
            return (await service.record_play(args.game_id)).to_dict()
        case "status":
            return (await service.set_active_status(args.game_id, args.is_active)).to_dict()
        case "set-rank":
            return (await service.set_manual_rank(args.game_id, args.rank)).to_dict()
        case "top":
            limit = args.limit if args.limit is not None else context.config.default_top_limit
            active_only = not args.include_inactive
            games = await service.get_top_games(limit, active_only)
            return {"games": _games(games), "limit": limit, "activeOnly": active_only}
        case "list":
            query = RankingQuery(
                active_only=args.active_only,
                sort_by=SortField.parse(args.sort_by),
                sort_order=SortOrder.parse(args.sort_order),
            )
            games = await service.get_all_ranked(query)
            return {"games": _games(games), "total": len(games)}
        case "stats":
            return (await service.get_statistics()).to_dict()
        case "recalculate":
            return (await service.recalculate()).to_dict()
        case "migrate":
            return (await service.migrate()).to_dict()
        case "add":
            record = await context.catalog.add_game(
                name=args.name,
                game_id=args.game_id,
                slug=args.slug,
                description=args.description,
                category=args.category,
                thumb_url=args.thumb_url,
                logo_url=args.logo_url,
                gif_url=args.gif_url,
                play_url=args.play_url,
                size=args.size,
            )
            return record.to_dict()
        case "show":
            return (await context.catalog.get_game(args.game_id)).to_dict()
        case "update":
            record = await context.catalog.update_game(
                args.game_id,
                name=args.name,
                slug=args.slug,
                description=args.description,
                category=args.category,
                thumb_url=args.thumb_url,
                logo_url=args.logo_url,
                gif_url=args.gif_url,
                play_url=args.play_url,
                size=args.size,
            )
            return record.to_dict()
        case "remove":
            return (await context.catalog.remove_game(args.game_id)).to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def report_error(error: Exception, args: argparse.Namespace) -> int:
    """Log `error`, print its user message on stderr and return the exit code."""
    friendly = handle_error(error, operation=args.command, component="cli", context=vars(args))
    print(get_error_service().create_user_message(friendly), file=sys.stderr)
    return friendly.exit_code


async def run(args: argparse.Namespace, context: ApplicationContext) -> int:
    """Run one command, print its result as JSON and return the exit code."""
    try:
        result = await run_command(args, context)
    except Exception as e:
        return report_error(e, args)
    finally:
        await context.cleanup()

    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    logging_service = setup_logging(log_level=args.log_level or "WARNING", log_dir=args.log_dir, quiet=args.quiet)
    structlog.contextvars.bind_contextvars(command=args.command)

    context = ApplicationContext(config_path=args.config)
    try:
        config = context.config
    except ConfigurationError as e:
        sys.exit(report_error(e, args))
    if args.log_level is None:
        logging_service.set_level(config.log_level)

    log.info("Starting game ranking", version=VERSION, store_backend=config.store_backend)

    try:
        exit_code = asyncio.run(run(args, context))
    except KeyboardInterrupt:
        log.info("Interrupted by user")
        exit_code = 130

    log.info("Exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
