"""Utilities for loading remote field mappings and decoding SIS records."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, fields as dataclass_fields
from datetime import date, datetime
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Sequence

import yaml
from flask import current_app

from sis_sync.models import REMOTE_RECORD_TYPES

DEFAULT_MAPPING_PATH = Path(__file__).resolve().parents[2] / "config" / "mappings" / "powerschool_v1.yaml"


class MappingLoadError(RuntimeError):
    """Raised when a mapping file cannot be loaded or validated."""


@dataclass(frozen=True)
class MappingField:
    target: str
    source: str | None = None
    required: bool = False
    default: Any | None = None
    transform: str | None = None


@dataclass(frozen=True)
class MappingSpec:
    """Field mapping for one remote entity and the named query that returns it."""

    entity: str
    query: str
    fields: Sequence[MappingField]


@dataclass(frozen=True)
class MappingFile:
    version: int
    adapter: str
    entities: Mapping[str, MappingSpec]
    checksum: str
    path: Path | None

    def spec_for(self, entity: str) -> MappingSpec:
        try:
            return self.entities[entity]
        except KeyError as exc:
            raise MappingLoadError(f"Mapping has no entry for entity '{entity}'.") from exc


def _parse_fields(entity: str, payload: Any, transforms: Mapping[str, Callable[[Any], Any]]) -> tuple[MappingField, ...]:
    if not isinstance(payload, Sequence) or isinstance(payload, (str, bytes)):
        raise MappingLoadError(f"Entity '{entity}' fields must be a list.")
    record_cls = REMOTE_RECORD_TYPES[entity]
    known_targets = {item.name for item in dataclass_fields(record_cls)}
    parsed: list[MappingField] = []
    seen_targets: set[str] = set()
    for entry in payload:
        if not isinstance(entry, Mapping):
            raise MappingLoadError(f"Field definition must be a mapping, got {entry!r}")
        target = entry.get("target")
        if not target:
            raise MappingLoadError(f"Field entry missing 'target': {entry!r}")
        target = str(target).strip()
        if target not in known_targets:
            raise MappingLoadError(f"Unknown target '{target}' for entity '{entity}'.")
        if target in seen_targets:
            raise MappingLoadError(f"Duplicate target '{target}' in mapping for '{entity}'.")
        seen_targets.add(target)
        source = entry.get("source")
        transform = entry.get("transform")
        mapping_field = MappingField(
            target=target,
            source=str(source).strip() if source else None,
            required=bool(entry.get("required", False)),
            default=entry.get("default"),
            transform=str(transform).strip() if transform else None,
        )
        if mapping_field.source is None and mapping_field.default is None:
            raise MappingLoadError(f"Field '{target}' requires either source or default.")
        if mapping_field.transform and mapping_field.transform not in transforms:
            raise MappingLoadError(f"Unknown transform '{mapping_field.transform}' for field '{target}'.")
        parsed.append(mapping_field)
    return tuple(parsed)


def parse_mapping(raw: Mapping[str, Any], *, path: Path | None = None) -> MappingFile:
    """Validate an already-parsed mapping document."""

    try:
        version = int(raw["version"])
        adapter = str(raw["adapter"]).strip()
        entities_payload = raw["entities"]
    except KeyError as exc:
        raise MappingLoadError(f"Missing required mapping attribute: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise MappingLoadError(f"Invalid mapping attribute: {exc}") from exc

    if not adapter:
        raise MappingLoadError("Mapping adapter value cannot be empty.")
    if not isinstance(entities_payload, Mapping):
        raise MappingLoadError("Mapping 'entities' must be a mapping of entity name to definition.")

    transforms = build_transform_registry()
    entities: dict[str, MappingSpec] = {}
    for name, definition in entities_payload.items():
        entity = str(name).strip()
        if entity not in REMOTE_RECORD_TYPES:
            raise MappingLoadError(f"Unknown entity '{entity}' in mapping.")
        if not isinstance(definition, Mapping):
            raise MappingLoadError(f"Entity '{entity}' definition must be a mapping.")
        query = str(definition.get("query") or "").strip()
        if not query:
            raise MappingLoadError(f"Entity '{entity}' is missing its query name.")
        entities[entity] = MappingSpec(
            entity=entity,
            query=query,
            fields=_parse_fields(entity, definition.get("fields") or [], transforms),
        )

    missing = sorted(set(REMOTE_RECORD_TYPES) - set(entities))
    if missing:
        raise MappingLoadError(f"Mapping is missing entities: {', '.join(missing)}")

    return MappingFile(
        version=version,
        adapter=adapter,
        entities=entities,
        checksum=_compute_checksum(raw),
        path=path,
    )


def load_mapping(path: str | Path) -> MappingFile:
    """
    Load and validate a YAML mapping file.
    """

    path = Path(path)
    if not path.exists():
        raise MappingLoadError(f"Mapping file not found at {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - YAML parser errors
        raise MappingLoadError(f"Failed to parse mapping YAML at {path}: {exc}") from exc
    if not isinstance(raw, Mapping):
        raise MappingLoadError(f"Mapping file {path} must contain a mapping at the top level.")
    return parse_mapping(raw, path=path)


def get_active_mapping() -> MappingFile:
    """
    Load the configured mapping (cached per app, reloaded when the file changes).
    """

    config_path = Path(current_app.config.get("SIS_MAPPING_PATH") or DEFAULT_MAPPING_PATH)
    if not config_path.exists():
        raise MappingLoadError(f"SIS mapping file not found at {config_path}")
    cache: dict[str, tuple[MappingFile, float]] = current_app.extensions.setdefault("_sis_mapping_cache", {})
    cache_key = str(config_path)
    current_mtime = config_path.stat().st_mtime

    cached_entry = cache.get(cache_key)
    if cached_entry:
        cached_mapping, cached_mtime = cached_entry
        if cached_mtime == current_mtime:
            return cached_mapping
        current_app.logger.debug(f"Mapping file changed, reloading: {config_path}")

    mapping = load_mapping(config_path)
    cache[cache_key] = (mapping, current_mtime)
    return mapping


def _compute_checksum(payload: Mapping[str, Any]) -> str:
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()


# Decoder ---------------------------------------------------------------------


@dataclass
class DecodeResult:
    record: Any
    unmapped_fields: dict[str, Any]
    errors: list[str] = field(default_factory=list)


_MISSING = object()


def _get_nested_value(payload: Mapping[str, Any], dotted_path: str) -> Any:
    current: Any = payload
    for part in dotted_path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class RemoteRecordDecoder:
    """Turn raw SIS query rows into structural remote records."""

    def __init__(self, spec: MappingSpec):
        self.spec = spec
        self.record_cls = REMOTE_RECORD_TYPES[spec.entity]
        self.transform_registry = build_transform_registry()
        self._top_level_sources = {item.source.split(".", 1)[0] for item in spec.fields if item.source}

    def decode(self, payload: Mapping[str, Any]) -> DecodeResult:
        values: dict[str, Any] = {}
        errors: list[str] = []

        for mapping_field in self.spec.fields:
            value: Any = None
            if mapping_field.source:
                found = _get_nested_value(payload, mapping_field.source)
                value = None if found is _MISSING else found

            if (value is None or value == "") and mapping_field.default is not None:
                value = mapping_field.default

            if mapping_field.required and (value is None or value == ""):
                errors.append(f"Required field '{mapping_field.target}' missing (source: {mapping_field.source})")

            if mapping_field.transform and value is not None:
                transform_fn = self.transform_registry[mapping_field.transform]
                try:
                    value = transform_fn(value)
                except (TypeError, ValueError) as exc:
                    errors.append(f"Transform '{mapping_field.transform}' failed for {mapping_field.target}: {exc}")
                    value = None
            values[mapping_field.target] = value

        unmapped = {
            key: val
            for key, val in payload.items()
            if key not in self._top_level_sources and val not in (None, "", [], {})
        }
        return DecodeResult(record=self.record_cls(**values), unmapped_fields=unmapped, errors=errors)


def build_transform_registry() -> Dict[str, Callable[[Any], Any]]:
    def parse_date(value: Any) -> date | None:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        text = str(value).strip()
        if not text:
            return None
        return date.fromisoformat(text[:10])

    def to_bool(value: Any) -> bool | None:
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return value != 0
        text = str(value).strip().lower()
        if not text:
            return None
        if text in ("true", "1", "yes", "y", "on", "t"):
            return True
        if text in ("false", "0", "no", "n", "off", "f"):
            return False
        raise ValueError(f"not a boolean: {value!r}")

    def to_int(value: Any) -> int | None:
        if isinstance(value, bool):
            raise ValueError(f"not an integer: {value!r}")
        if isinstance(value, int):
            return value
        text = str(value).strip()
        if not text:
            return None
        number = float(text)
        if not number.is_integer():
            raise ValueError(f"not an integer: {value!r}")
        return int(number)

    def strip(value: Any) -> str | None:
        text = str(value).strip()
        return text or None

    def lower(value: Any) -> str | None:
        text = str(value).strip().lower()
        return text or None

    return {
        "parse_date": parse_date,
        "to_bool": to_bool,
        "to_int": to_int,
        "strip": strip,
        "lower": lower,
    }


__all__ = [
    "DEFAULT_MAPPING_PATH",
    "DecodeResult",
    "MappingField",
    "MappingFile",
    "MappingLoadError",
    "MappingSpec",
    "RemoteRecordDecoder",
    "build_transform_registry",
    "get_active_mapping",
    "load_mapping",
    "parse_mapping",
]
