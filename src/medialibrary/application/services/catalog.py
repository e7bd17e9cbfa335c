"""In-memory media catalog."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator
from typing import Generic, TypeVar

from medialibrary.domain.entities import Album, Artist, CatalogEntity, Genre, Song, Video

E = TypeVar("E", bound=CatalogEntity)


class EntityCollection(Generic[E]):
    """Ordered collection with a natural-key index.

    Hey future me - the reconciler asks "does this album exist?" for EVERY file. With a plain
    list that's a linear scan per file, i.e. quadratic crawls on big libraries. The dict index
    makes it O(1). Insertion order is kept separately for the API listing.
    """

    def __init__(self, name: str, entities: Iterable[E] = ()) -> None:
        self.name = name
        self._items: list[E] = []
        self._index: dict[Hashable, E] = {}
        for entity in entities:
            self.add(entity)

    def add(self, entity: E) -> bool:
        """Add an entity unless one with the same natural key exists.

        Returns:
            True if added, False if the key was already present
        """
        key = entity.natural_key
        if key in self._index:
            return False
        self._items.append(entity)
        self._index[key] = entity
        return True

    def find(self, key: Hashable) -> E | None:
        return self._index.get(key)

    def contains(self, key: Hashable) -> bool:
        return key in self._index

    def replace(self, entities: Iterable[E]) -> None:
        """Swap the whole content, e.g. after loading from the store."""
        self._items = []
        self._index = {}
        for entity in entities:
            self.add(entity)

    def clear(self) -> None:
        self.replace(())

    def snapshot(self) -> list[E]:
        """Copy of the items, safe to iterate while the collection changes."""
        return list(self._items)

    def __iter__(self) -> Iterator[E]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, entity: object) -> bool:
        return isinstance(entity, CatalogEntity) and entity.natural_key in self._index

    def __repr__(self) -> str:
        return f"EntityCollection({self.name!r}, {len(self._items)} items)"


class MediaCatalog:
    """The five in-memory collections the library UI reads from.

    Collection order (songs, albums, artists, genres, videos) is also the order in which
    the sync manager writes to the store.
    """

    def __init__(self) -> None:
        self.songs: EntityCollection[Song] = EntityCollection("songs")
        self.albums: EntityCollection[Album] = EntityCollection("albums")
        self.artists: EntityCollection[Artist] = EntityCollection("artists")
        self.genres: EntityCollection[Genre] = EntityCollection("genres")
        self.videos: EntityCollection[Video] = EntityCollection("videos")

    def collections(self) -> tuple[EntityCollection, ...]:
        return (self.songs, self.albums, self.artists, self.genres, self.videos)

    def get(self, name: str) -> EntityCollection:
        """Look up a collection by name.

        Raises:
            KeyError: If no collection has that name
        """
        for collection in self.collections():
            if collection.name == name:
                return collection
        raise KeyError(name)

    def counts(self) -> dict[str, int]:
        return {c.name: len(c) for c in self.collections()}

    def is_empty(self) -> bool:
        return all(len(c) == 0 for c in self.collections())
