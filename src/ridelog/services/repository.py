"""Offline-tolerant record repositories.

A repository is the single source of truth for one record collection. It
talks to the REST backend while the backend answers, and switches to the
local JSON cache as soon as a call fails for transport reasons. Once offline
it stays offline until the next explicit `load()`, so one session never
splits its writes across two stores.

Validation and not-found errors always reach the caller. Transport failures
never do: they turn into an advisory in `last_error`. Cache write failures
always do, since there is nothing left to fall back to.

The repository takes no locks. Callers issue at most one mutation per
record id at a time.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Container, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

from ridelog.errors import NotFoundError, PersistenceError, ValidationError
from ridelog.models.photo import Photo, validate_photo_draft
from ridelog.models.record import RecordId, format_timestamp, utcnow
from ridelog.models.ride import Ride, validate_ride_draft
from ridelog.services.cache import LocalCache
from ridelog.services.remote import RemoteResult, RemoteStatus, RemoteStore

logger = logging.getLogger("ridelog.repository")

R = TypeVar("R", Ride, Photo)

OFFLINE_ADVISORY = "Using offline mode - start backend for full features"

# Errors raised while turning a JSON payload into a record
_PARSE_ERRORS = (KeyError, TypeError, ValueError, AttributeError)


class StoreMode(Enum):
    """Which store backs the repository."""

    REMOTE = "remote"
    LOCAL = "local"


@dataclass
class LoadResult(Generic[R]):
    """Records returned by `RecordRepository.load`.

    Attributes:
        records: Snapshot of the mirror after loading.
        advisory: Human-readable notice when running degraded, else None.
    """

    records: list[R] = field(default_factory=list)
    advisory: str | None = None

    @property
    def degraded(self) -> bool:
        return self.advisory is not None


class IdGenerator:
    """Client-side ids from the millisecond clock.

    Ids are strictly increasing within one generator and skip any id that is
    already taken, so an id is never handed out twice in a session.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0

    def next_id(self, taken: Container[Any] = ()) -> int:
        candidate = max(int(self._clock() * 1000), self._last + 1)
        while candidate in taken:
            candidate += 1
        self._last = candidate
        return candidate


def _same_id(a: Any, b: Any) -> bool:
    """Compare ids loosely; ids typed on a command line arrive as text."""
    return a == b or str(a) == str(b)


class RecordRepository(Generic[R]):
    """CRUD over one record kind with remote-first, cache-fallback storage.

    Subclasses supply the record-specific hooks: validation, construction
    from a draft, parsing of stored payloads and the record's year.
    """

    kind = "record"
    plural = "records"

    def __init__(
        self,
        remote: RemoteStore,
        cache: LocalCache,
        clock: Callable[[], datetime] = utcnow,
        id_generator: IdGenerator | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            remote: Client for the backend collection.
            cache: Offline cache for the same collection.
            clock: Source of creation/update timestamps.
            id_generator: Source of client-side ids.
        """
        self.remote = remote
        self.cache = cache
        self._clock = clock
        self._ids = id_generator or IdGenerator()
        self._mirror: list[R] = []
        self._mode = StoreMode.REMOTE
        self._last_error: str | None = None

    # Record-specific hooks

    def _validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def _build(self, draft: dict[str, Any], record_id: RecordId, now: datetime) -> R:
        raise NotImplementedError

    def _parse(self, data: Mapping[str, Any]) -> R:
        raise NotImplementedError

    def _record_year(self, record: R) -> int | None:
        raise NotImplementedError

    def _check_references(self, draft: dict[str, Any], existing: R | None = None) -> None:
        """Hook for cross-collection checks on a validated draft."""

    # State

    @property
    def mode(self) -> StoreMode:
        return self._mode

    @property
    def is_offline(self) -> bool:
        return self._mode is StoreMode.LOCAL

    @property
    def last_error(self) -> str | None:
        """Advisory describing the degraded state, if any."""
        return self._last_error

    @property
    def records(self) -> list[R]:
        """Snapshot of the mirror in insertion order."""
        return list(self._mirror)

    def __len__(self) -> int:
        return len(self._mirror)

    def __iter__(self) -> Iterator[R]:
        return iter(list(self._mirror))

    # Operations

    def load(self) -> LoadResult[R]:
        """Reload the mirror, preferring the backend.

        Any backend failure (unreachable, non-2xx, malformed payload) falls
        back to the offline cache and flags degraded mode. Nothing is raised:
        an unreadable cache leaves the mirror empty with an advisory.

        Returns:
            The loaded records and the advisory, if degraded.
        """
        result = self.remote.list_all()
        if result.ok:
            try:
                records = [self._parse(item) for item in result.payload]
            except _PARSE_ERRORS as e:
                result = RemoteResult.unavailable(f"Malformed {self.kind} in listing: {e}")
            else:
                self._mirror = records
                self._mode = StoreMode.REMOTE
                self._last_error = None
                logger.info("Loaded %d %s from backend", len(records), self.plural)
                return LoadResult(list(records))

        logger.warning(
            "Backend not available for %s, using offline cache: %s", self.plural, result.error
        )
        self._mode = StoreMode.LOCAL
        try:
            cached = [self._parse(item) for item in self.cache.read_all()]
        except (PersistenceError, *_PARSE_ERRORS) as e:
            logger.error("Error reading %s from offline cache: %s", self.plural, e)
            self._mirror = []
            self._last_error = f"Unable to load {self.plural}"
        else:
            self._mirror = cached
            self._last_error = OFFLINE_ADVISORY
            logger.info("Loaded %d %s from offline cache", len(cached), self.plural)

        return LoadResult(list(self._mirror), advisory=self._last_error)

    def create(self, draft: Mapping[str, Any]) -> R:
        """Create a record from a draft.

        The draft is validated before any I/O. A client id and creation time
        are assigned immediately; if the backend accepts the record, its
        canonical copy (with the server id) replaces the placeholder.

        Args:
            draft: Record fields in wire shape, without an id.

        Returns:
            The record as finally stored, server or local variant.

        Raises:
            ValidationError: If the draft is invalid or the backend rejects it.
            PersistenceError: If the record had to be cached and that failed.
        """
        clean = self._validate(draft)
        self._check_references(clean)

        now = self._clock()
        record_id = self._ids.next_id({r.id for r in self._mirror})
        placeholder = self._build(clean, record_id, now)
        previous = list(self._mirror)
        self._mirror.append(placeholder)

        if self._mode is StoreMode.LOCAL:
            self._persist(previous)
            logger.info("Created %s %s in offline cache", self.kind, record_id)
            return placeholder

        result = self.remote.create(clean)
        if result.ok:
            try:
                stored = self._parse(result.payload)
            except _PARSE_ERRORS as e:
                result = RemoteResult.unavailable(f"Malformed {self.kind} payload: {e}")
            else:
                self._replace(placeholder, stored)
                logger.info("Created %s %s", self.kind, stored.id)
                return stored

        if result.status is RemoteStatus.UNAVAILABLE:
            self._fall_back(result, previous, f"Added {self.kind} offline - start backend to sync")
            return placeholder

        self._mirror = previous
        logger.error("Backend refused new %s: %s", self.kind, result.error)
        raise result.error  # type: ignore[misc]

    def update(self, record: R | Mapping[str, Any], record_id: RecordId | None = None) -> R:
        """Replace some or all fields of an existing record.

        The record keeps its original id whatever id the payload carries, and
        gets a fresh ``updatedAt``.

        Args:
            record: Full record, or a mapping of changed fields in wire shape.
            record_id: Target id; defaults to the payload's id.

        Returns:
            The updated record as stored.

        Raises:
            NotFoundError: If the target id is unknown here or at the backend.
            ValidationError: If the merged record is invalid or rejected.
            PersistenceError: If the change had to be cached and that failed.
        """
        changes = record.to_dict() if isinstance(record, (Ride, Photo)) else dict(record)
        if record_id is None:
            record_id = changes.get("id")
        if "photos" in changes:
            legacy = changes.pop("photos")
            changes.setdefault("photoIds", legacy)

        index = self._index_of(record_id)
        if index is None:
            raise NotFoundError(record_id, self.kind)
        existing = self._mirror[index]

        base = existing.to_dict()
        clean = self._validate({**base, **changes})
        self._check_references(clean, existing)
        updated = self._parse(
            {
                **base,
                **clean,
                "id": existing.id,
                "updatedAt": format_timestamp(self._clock()),
            }
        )
        previous = list(self._mirror)

        if self._mode is StoreMode.LOCAL:
            self._mirror[index] = updated
            self._persist(previous)
            logger.info("Updated %s %s in offline cache", self.kind, existing.id)
            return updated

        result = self.remote.update(existing.id, updated.to_dict())
        if result.ok:
            try:
                stored = dataclasses.replace(self._parse(result.payload), id=existing.id)
            except _PARSE_ERRORS as e:
                result = RemoteResult.unavailable(f"Malformed {self.kind} payload: {e}")
            else:
                self._replace(existing, stored)
                logger.info("Updated %s %s", self.kind, existing.id)
                return stored

        if result.status is RemoteStatus.UNAVAILABLE:
            self._mirror[index] = updated
            self._fall_back(
                result, previous, f"Updated {self.kind} offline - start backend to sync"
            )
            return updated

        logger.error("Backend refused update of %s %s: %s", self.kind, existing.id, result.error)
        raise result.error  # type: ignore[misc]

    def delete(self, record_id: RecordId) -> None:
        """Delete a record.

        Deleting is not idempotent: a second delete of the same id raises
        NotFoundError. A backend 404 also drops the stale mirror entry.

        Raises:
            NotFoundError: If the id is unknown here or at the backend.
            PersistenceError: If the deletion had to be cached and that failed.
        """
        index = self._index_of(record_id)
        if index is None:
            raise NotFoundError(record_id, self.kind)
        existing = self._mirror[index]
        previous = list(self._mirror)

        if self._mode is StoreMode.LOCAL:
            del self._mirror[index]
            self._persist(previous)
            logger.info("Deleted %s %s from offline cache", self.kind, existing.id)
            return

        result = self.remote.delete(existing.id)
        if result.ok:
            self._remove(existing)
            logger.info("Deleted %s %s", self.kind, existing.id)
            return

        if result.status is RemoteStatus.NOT_FOUND:
            logger.warning("%s %s was already gone from backend", self.kind.capitalize(), existing.id)
            self._remove(existing)
            raise NotFoundError(existing.id, self.kind)

        if result.status is RemoteStatus.UNAVAILABLE:
            del self._mirror[index]
            self._fall_back(
                result, previous, f"Deleted {self.kind} offline - start backend to sync"
            )
            return

        raise result.error  # type: ignore[misc]

    def get_by_id(self, record_id: RecordId) -> R | None:
        """Look a record up in the mirror. No I/O."""
        index = self._index_of(record_id)
        return None if index is None else self._mirror[index]

    def available_years(self) -> list[int]:
        """Distinct record years, newest first."""
        years = {self._record_year(r) for r in self._mirror}
        return sorted((y for y in years if y is not None), reverse=True)

    def for_year(self, year: int) -> list[R]:
        """Records falling in `year`, in mirror order."""
        return [r for r in self._mirror if self._record_year(r) == year]

    # Internals

    def _index_of(self, record_id: RecordId | None) -> int | None:
        if record_id is None:
            return None
        for i, record in enumerate(self._mirror):
            if _same_id(record.id, record_id):
                return i
        return None

    def _replace(self, old: R, new: R) -> None:
        """Swap `old` for `new` in place, or append if `old` is gone."""
        for i, record in enumerate(self._mirror):
            if record is old:
                self._mirror[i] = new
                return
        if self._index_of(new.id) is None:
            self._mirror.append(new)

    def _remove(self, record: R) -> None:
        self._mirror = [r for r in self._mirror if r is not record]

    def _fall_back(self, result: RemoteResult, previous: list[R], advisory: str) -> None:
        """Switch to offline mode and write the current mirror to the cache."""
        logger.warning("Backend failed, switching %s to offline cache: %s", self.plural, result.error)
        self._mode = StoreMode.LOCAL
        try:
            self._persist(previous)
        except PersistenceError as e:
            # Nothing was cached, so the store is still remote
            self._mode = StoreMode.REMOTE
            raise e from result.error
        self._last_error = advisory

    def _persist(self, previous: list[R]) -> None:
        """Write the mirror to the cache, restoring `previous` on failure."""
        try:
            self.cache.write_all([r.to_dict() for r in self._mirror])
        except PersistenceError:
            logger.error("Could not write %s to offline cache", self.plural)
            self._mirror = previous
            raise


class PhotoRepository(RecordRepository[Photo]):
    """Repository for photo metadata."""

    kind = "photo"
    plural = "photos"

    def _validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return validate_photo_draft(data)

    def _build(self, draft: dict[str, Any], record_id: RecordId, now: datetime) -> Photo:
        return Photo.from_draft(draft, record_id, now)

    def _parse(self, data: Mapping[str, Any]) -> Photo:
        return Photo.from_dict(data)

    def _record_year(self, record: Photo) -> int | None:
        taken = record.date_taken or record.uploaded_at
        return taken.year if taken else None

    def get_by_ids(self, photo_ids: list[RecordId]) -> list[Photo]:
        """Resolve photo references, skipping ids that no longer exist."""
        photos = []
        for photo_id in photo_ids:
            photo = self.get_by_id(photo_id)
            if photo is not None:
                photos.append(photo)
        return photos

    def search(self, text: str) -> list[Photo]:
        """Case-insensitive match on names, description and tags."""
        needle = text.strip().lower()
        if not needle:
            return self.records
        return [
            p
            for p in self._mirror
            if needle in p.filename.lower()
            or needle in p.original_name.lower()
            or needle in p.description.lower()
            or any(needle in tag.lower() for tag in p.tags)
        ]


class RideRepository(RecordRepository[Ride]):
    """Repository for rides.

    When given the photo repository, newly added photo references are
    checked against it. References left dangling by a later photo deletion
    are tolerated and never repaired.
    """

    kind = "ride"
    plural = "rides"

    def __init__(
        self,
        remote: RemoteStore,
        cache: LocalCache,
        photos: PhotoRepository | None = None,
        clock: Callable[[], datetime] = utcnow,
        id_generator: IdGenerator | None = None,
    ) -> None:
        super().__init__(remote, cache, clock=clock, id_generator=id_generator)
        self.photos = photos

    def _validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        return validate_ride_draft(data)

    def _build(self, draft: dict[str, Any], record_id: RecordId, now: datetime) -> Ride:
        return Ride.from_draft(draft, record_id, now)

    def _parse(self, data: Mapping[str, Any]) -> Ride:
        return Ride.from_dict(data)

    def _record_year(self, record: Ride) -> int | None:
        return record.date.year

    def _check_references(self, draft: dict[str, Any], existing: Ride | None = None) -> None:
        if self.photos is None:
            return
        already = existing.photo_ids if existing is not None else []
        for photo_id in draft["photoIds"]:
            if any(_same_id(photo_id, known) for known in already):
                continue
            if self.photos.get_by_id(photo_id) is None:
                raise ValidationError(f"Unknown photo id: {photo_id}", field="photoIds")

    def photos_for(self, ride: Ride) -> list[Photo]:
        """Photos a ride references that still exist."""
        if self.photos is None:
            return []
        return self.photos.get_by_ids(ride.photo_ids)
