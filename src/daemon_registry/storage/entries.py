"""Entry store: static seed list merged with the persisted overlay.

The seed list is process-embedded and read-only; every :meth:`EntryStore.load`
hands out fresh copies of it followed by the overlay read from the KV store.
The overlay (``announced_daemons``) is the only durable mutable state.

Concurrency contract:
    :meth:`EntryStore.update_overlay` is a plain read-modify-write with no
    locking and no version check. Two concurrent writers (two announces, or an
    announce racing a health write-back) can each read the same overlay and the
    later ``put`` silently discards the earlier one's change. This mirrors the
    backing store's guarantees and is intentionally not hidden behind a lock.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path

from pydantic import ValidationError

from daemon_registry.clock import Clock, utc_now
from daemon_registry.errors import ConfigurationError
from daemon_registry.models.entities import (
    DaemonEntry,
    HealthUpdate,
    RegistrySnapshot,
    SeedRegistry,
)
from daemon_registry.observability import get_logger
from daemon_registry.storage.blobs import (
    decode_model_list,
    encode_model_list,
    read_key,
    write_key,
)
from daemon_registry.storage.kv import KVStore

logger = get_logger(__name__)

KV_ANNOUNCED_KEY = "announced_daemons"

OverlayMutation = Callable[[list[DaemonEntry]], list[DaemonEntry]]


def load_seed(path: str | Path | None) -> SeedRegistry:
    """Load the seed registry from a JSON file, or an empty seed when *path* is None.

    Raises:
        ConfigurationError: If the file is missing or does not match SeedRegistry.
    """
    if path is None:
        return SeedRegistry()
    seed_path = Path(path)
    try:
        return SeedRegistry.model_validate_json(seed_path.read_bytes())
    except OSError as e:
        raise ConfigurationError("DAEMON_REGISTRY_SEED_PATH", str(seed_path), str(e)) from e
    except ValidationError as e:
        raise ConfigurationError(
            "DAEMON_REGISTRY_SEED_PATH",
            str(seed_path),
            f"invalid seed data ({e.error_count()} errors)",
        ) from e


def merge_entries(seed: list[DaemonEntry], overlay: list[DaemonEntry]) -> list[DaemonEntry]:
    """Concatenate seed and overlay, dropping later entries that reuse a url or id."""
    merged: list[DaemonEntry] = []
    seen_urls: set[str] = set()
    seen_ids: set[str] = set()
    for entry in [*seed, *overlay]:
        if entry.url in seen_urls or entry.id in seen_ids:
            logger.warning(
                "registry.store.duplicate_dropped",
                daemon_url=entry.url,
                daemon_id=entry.id,
            )
            continue
        seen_urls.add(entry.url)
        seen_ids.add(entry.id)
        merged.append(entry)
    return merged


class EntryStore:
    """Read/write unit over the seed list and the KV overlay."""

    def __init__(
        self,
        kv: KVStore,
        seed: SeedRegistry | None = None,
        *,
        clock: Clock = utc_now,
    ) -> None:
        self._kv = kv
        self._seed = seed or SeedRegistry()
        self._clock = clock

    @property
    def seed_version(self) -> int:
        return self._seed.version

    def seed_entries(self) -> list[DaemonEntry]:
        return [entry.model_copy(deep=True) for entry in self._seed.entries]

    async def load_overlay(self, *, strict: bool = False) -> list[DaemonEntry]:
        """Read the persisted overlay.

        Args:
            strict: Raise StoreUnavailableError on store failure (write paths)
                instead of logging and returning an empty overlay (read paths).
        """
        raw = await read_key(self._kv, KV_ANNOUNCED_KEY, strict=strict)
        return decode_model_list(raw, DaemonEntry, key=KV_ANNOUNCED_KEY)

    async def load(self) -> RegistrySnapshot:
        """Return seed copies followed by the overlay; seed-only if the store fails."""
        overlay = await self.load_overlay(strict=False)
        return RegistrySnapshot(
            version=self._seed.version,
            entries=merge_entries(self.seed_entries(), overlay),
            updated=self._clock(),
        )

    async def save(self, overlay: list[DaemonEntry]) -> None:
        """Overwrite the whole persisted overlay.

        Raises:
            StoreUnavailableError: If the put fails.
        """
        await write_key(self._kv, KV_ANNOUNCED_KEY, encode_model_list(overlay))

    async def update_overlay(self, mutate: OverlayMutation) -> list[DaemonEntry]:
        """Read the overlay, apply *mutate*, write the result back; not atomic.

        Returns the overlay as written. See the module docstring for the
        lost-update behaviour under concurrent callers.

        Raises:
            StoreUnavailableError: If the read or the write fails.
        """
        current = await self.load_overlay(strict=True)
        updated = mutate(current)
        await self.save(updated)
        return updated

    async def apply_health_updates(self, updates: Mapping[str, HealthUpdate]) -> int:
        """Merge health deltas (keyed by url) into overlay entries and write back.

        Seed entries are never persisted; deltas for urls not in the overlay are
        ignored. Nothing is written when no overlay entry matched. Same
        non-atomic read-modify-write contract as :meth:`update_overlay`.

        Returns:
            Number of overlay entries updated.

        Raises:
            StoreUnavailableError: If the read or the write fails.
        """
        if not updates:
            return 0
        overlay = await self.load_overlay(strict=True)
        changed = 0
        merged: list[DaemonEntry] = []
        for entry in overlay:
            update = updates.get(entry.url)
            if update is not None:
                entry = entry.apply_health(update)
                changed += 1
            merged.append(entry)
        if changed:
            await self.save(merged)
        return changed
