"""Decode-or-default helpers for KV blobs.

KV values carry no schema; every read site decodes explicitly and falls back
to a default instead of trusting the stored shape. Store failures on reads can
degrade (``strict=False``) while writes always surface
:class:`~daemon_registry.errors.StoreUnavailableError`.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from daemon_registry.errors import StoreUnavailableError
from daemon_registry.observability import get_logger
from daemon_registry.storage.kv import KVStore

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


async def read_key(kv: KVStore, key: str, *, strict: bool) -> bytes | None:
    """Fetch *key*; on store failure raise (strict) or log and return None."""
    try:
        return await kv.get(key)
    except Exception as e:
        if strict:
            raise StoreUnavailableError(key, "get", str(e)) from e
        logger.warning("registry.store.read_failed", key=key, error=str(e))
        return None


async def write_key(kv: KVStore, key: str, value: bytes, ttl: float | None = None) -> None:
    """Overwrite *key*; any store failure raises StoreUnavailableError."""
    try:
        await kv.put(key, value, ttl=ttl)
    except Exception as e:
        raise StoreUnavailableError(key, "put", str(e)) from e


def decode_model(raw: bytes | None, model: type[ModelT], *, key: str) -> ModelT | None:
    """Decode one model from *raw*, or None if absent or malformed."""
    if raw is None:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        logger.warning("registry.store.malformed", key=key, error_count=e.error_count())
        return None


def decode_model_list(raw: bytes | None, model: type[ModelT], *, key: str) -> list[ModelT]:
    """Decode a JSON array of models item by item.

    A payload that is not a JSON array decodes to ``[]``; individual items that
    fail validation are dropped so one bad item does not discard the rest.
    """
    if raw is None:
        return []
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("registry.store.malformed", key=key, error=str(e))
        return []
    if not isinstance(data, list):
        logger.warning("registry.store.malformed", key=key, error="expected a JSON array")
        return []
    items: list[ModelT] = []
    for index, item in enumerate(data):
        try:
            items.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "registry.store.item_dropped",
                key=key,
                index=index,
                error_count=e.error_count(),
            )
    return items


def encode_model_list(items: Sequence[BaseModel]) -> bytes:
    """Serialize models as a JSON array (by alias, JSON-mode values)."""
    payload = [item.model_dump(mode="json", by_alias=True, exclude_none=True) for item in items]
    return json.dumps(payload).encode("utf-8")
