"""Game store backends.

A game store persists the whole game collection as one JSON document. The
stored document is either a bare array of games or an object with a
``games`` array; saves always write the object form and keep any other
top-level keys. Stores offer no transactions: a save replaces whatever is
there, so concurrent writers race and the last save wins.
"""

import copy
from pathlib import Path
from typing import Any, Protocol

import httpx
import structlog

from ..models.game import GameCollection, UnrecognizedDocumentError
from .errors import StorageFailure
from .filesystem import FileSystemService
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


class GameStore(Protocol):
    """Load/save contract the ranking service depends on."""

    async def load(self) -> GameCollection:
        """Return the stored collection, or an empty one if nothing is stored."""
        ...

    async def save(self, collection: GameCollection) -> None:
        """Replace the stored collection."""
        ...


def _parse_document(document: Any, location: str) -> GameCollection:
    try:
        collection = GameCollection.from_document(document)
    except UnrecognizedDocumentError:
        log.warning("Unknown game data format, using empty collection", location=location)
        return GameCollection()
    except ValueError as e:
        raise StorageFailure(
            "Stored game data is malformed",
            original_error=e,
            location=location,
            operation="load",
        ) from e

    log.info("Game collection loaded", location=location, games=len(collection))
    return collection


class InMemoryGameStore:
    """Process-local store holding a deep copy of the last saved document."""

    def __init__(self, document: Any = None) -> None:
        self._document: Any = copy.deepcopy(document)
        self.save_count = 0

    @property
    def document(self) -> Any:
        return copy.deepcopy(self._document)

    async def load(self) -> GameCollection:
        if self._document is None:
            return GameCollection()
        return _parse_document(copy.deepcopy(self._document), "memory")

    async def save(self, collection: GameCollection) -> None:
        self._document = collection.to_document()
        self.save_count += 1
        log.debug("Game collection saved", location="memory", games=len(collection))


class FileGameStore:
    """Store backed by a JSON file on local disk."""

    def __init__(self, path: Path, filesystem: FileSystemService | None = None) -> None:
        self.path = path
        self.filesystem = filesystem or FileSystemService()

    async def load(self) -> GameCollection:
        try:
            document = await self.filesystem.load_json(self.path)
        except FileNotFoundError:
            log.info("Game data file not found, starting with empty collection", path=str(self.path))
            return GameCollection()
        except (OSError, ValueError) as e:
            raise StorageFailure(
                "Failed to load game data",
                original_error=e,
                location=str(self.path),
                operation="load",
            ) from e
        return _parse_document(document, str(self.path))

    async def save(self, collection: GameCollection) -> None:
        try:
            await self.filesystem.save_json(collection.to_document(), self.path)
        except (OSError, ValueError) as e:
            raise StorageFailure(
                "Failed to save game data",
                original_error=e,
                location=str(self.path),
                operation="save",
            ) from e


class ObjectStoreGameStore:
    """Store backed by an S3-compatible object reachable over HTTP."""

    def __init__(self, http_client: HttpClientService, object_key: str = "public/game-data.json") -> None:
        self.http_client = http_client
        self.object_key = object_key.lstrip("/")

    async def load(self) -> GameCollection:
        try:
            response = await self.http_client.get(self.object_key)
            document = response.json()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                log.info("Game data object not found, starting with empty collection", key=self.object_key)
                return GameCollection()
            raise StorageFailure(
                "Failed to load game data",
                original_error=e,
                location=self.object_key,
                operation="load",
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise StorageFailure(
                "Failed to load game data",
                original_error=e,
                location=self.object_key,
                operation="load",
            ) from e
        return _parse_document(document, self.object_key)

    async def save(self, collection: GameCollection) -> None:
        try:
            await self.http_client.put_json(
                self.object_key,
                collection.to_document(),
                headers={"Cache-Control": "no-cache"},
            )
        except (httpx.HTTPStatusError, httpx.RequestError) as e:
            raise StorageFailure(
                "Failed to update game data",
                original_error=e,
                location=self.object_key,
                operation="save",
            ) from e
        log.info("Game collection saved", key=self.object_key, games=len(collection))
