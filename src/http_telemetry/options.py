"""Normalization and merging of telemetry options.

Options arrive in one of several shapes:

- `True` / `False`: enable or disable every event.
- A mapping containing only `adapter`, `pipeline` and `metadata` keys.
- A list/tuple of `(key, value)` pairs with the same keys.
- A `Settings` instance.

`normalize_options` converges all of them onto a (possibly partial) dict of
validated keys; `merge_settings` layers such a dict onto a base `Settings`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, StrictBool

from .errors import InvalidOptionsError

OPTION_KEYS: frozenset[str] = frozenset({"adapter", "pipeline", "metadata"})


class Settings(BaseModel):
    """Canonical telemetry settings for a client or a single invocation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    adapter: StrictBool = True
    pipeline: StrictBool = True
    metadata: dict[str, Any] = Field(default_factory=dict)

    def emits(self, phase: str) -> bool:
        """Return True if events for `phase` should be published."""
        return bool(getattr(self, phase, False))


DEFAULT_SETTINGS = Settings(adapter=True, pipeline=True, metadata={})
NO_EMIT_SETTINGS = Settings(adapter=False, pipeline=False, metadata={})

TelemetryOptions: TypeAlias = bool | Mapping[str, Any] | list[tuple[str, Any]] | tuple[tuple[str, Any], ...] | Settings


def normalize_options(value: Any) -> dict[str, Any]:
    """Validate options and return them as a dict of recognized keys.

    Booleans expand to a full settings dict; mappings and pair lists keep only
    the keys they name, so the result can be merged onto other settings.

    Raises:
    - `InvalidOptionsError` for any other shape, unknown keys or bad values
    """
    if isinstance(value, bool):
        settings = DEFAULT_SETTINGS if value else NO_EMIT_SETTINGS
        return settings.model_dump()
    if isinstance(value, Settings):
        return value.model_dump()
    if isinstance(value, Mapping):
        return _normalize_mapping(value, original=value)
    if isinstance(value, (list, tuple)):
        return _normalize_pairs(value)
    raise InvalidOptionsError(value)


def _normalize_pairs(value: list[Any] | tuple[Any, ...]) -> dict[str, Any]:
    """Convert a list of `(key, value)` pairs into a mapping and validate it."""
    pairs: dict[str, Any] = {}
    for item in value:
        if not isinstance(item, (list, tuple)) or len(item) != 2 or not isinstance(item[0], str):
            raise InvalidOptionsError(value)
        pairs[item[0]] = item[1]
    return _normalize_mapping(pairs, original=value)


def _normalize_mapping(value: Mapping[Any, Any], *, original: Any) -> dict[str, Any]:
    """Validate keys and value types of an options mapping."""
    if not all(isinstance(key, str) and key in OPTION_KEYS for key in value):
        raise InvalidOptionsError(original)

    normalized: dict[str, Any] = {}
    for key in ("adapter", "pipeline"):
        if key in value:
            if not isinstance(value[key], bool):
                raise InvalidOptionsError(original)
            normalized[key] = value[key]
    if "metadata" in value:
        metadata = value["metadata"]
        if not isinstance(metadata, Mapping) or not all(isinstance(key, str) for key in metadata):
            raise InvalidOptionsError(original)
        normalized["metadata"] = dict(metadata)
    return normalized


def merge_settings(base: Settings, override: Mapping[str, Any]) -> Settings:
    """Layer normalized options onto `base`.

    Boolean fields are replaced; metadata is merged key-by-key with the
    override winning on conflicts.
    """
    metadata = {**base.metadata, **override.get("metadata", {})}
    return Settings(
        adapter=override.get("adapter", base.adapter),
        pipeline=override.get("pipeline", base.pipeline),
        metadata=metadata,
    )
