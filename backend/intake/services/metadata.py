"""Normalization of the ``supporting_files_metadata`` form field.

Callers send the per-file metadata as a JSON string next to the multipart
files, in one of three shapes:

* a list of groups ``[{"type": ..., "title": ..., "items": [...]}, ...]``
* a single object with an ``items`` list and a ``mode`` naming the category
* nothing usable at all (absent, not JSON, or some other JSON value)

``parse_metadata`` resolves the shape once into ``GroupList``, ``SingleGroup``
or ``NoMetadata``; everything downstream works on ``MetadataGroup`` lists and
the filename lookup built from them. None of these functions raise on bad
input: anomalies end up in ``NormalizedMetadata.warnings``.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger(__name__)


def parse_coordinate(value: Any) -> float | None:
    """Accept a number or numeric string; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        if not value.strip():
            return None
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value.strip() or None
    return None


class MetadataItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    filename: str
    label: str | None = None
    station: str | None = None
    caption: str | None = None
    lat: float | None = None
    lon: float | None = None

    @field_validator("filename")
    @classmethod
    def _filename_required(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("filename must not be blank")
        return value

    @field_validator("label", "station", "caption", mode="before")
    @classmethod
    def _coerce_text(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return parse_coordinate(value)


@dataclass
class MetadataGroup:
    category: str | None
    title: str | None
    items: list[MetadataItem] = field(default_factory=list)


@dataclass(frozen=True)
class MetadataEntry:
    filename: str
    category: str | None
    title: str | None
    label: str | None
    station: str | None
    caption: str | None
    lat: float | None
    lon: float | None


@dataclass(frozen=True)
class GroupList:
    groups: list[Any]
    kind: Literal["groups"] = "groups"


@dataclass(frozen=True)
class SingleGroup:
    group: dict[str, Any]
    kind: Literal["single"] = "single"


@dataclass(frozen=True)
class NoMetadata:
    reason: str | None = None
    kind: Literal["none"] = "none"


MetadataPayload = GroupList | SingleGroup | NoMetadata


@dataclass
class NormalizedMetadata:
    groups: list[MetadataGroup] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def lookup(self) -> dict[str, MetadataEntry]:
        return build_lookup(self.groups)


def parse_metadata(blob: str | bytes | None) -> MetadataPayload:
    if blob is None:
        return NoMetadata()
    if isinstance(blob, bytes):
        blob = blob.decode("utf-8", errors="replace")
    if not blob.strip():
        return NoMetadata()
    try:
        data = json.loads(blob)
    except ValueError as exc:
        return NoMetadata(reason=f"Invalid supporting_files_metadata JSON: {exc}")

    if isinstance(data, list):
        return GroupList(groups=data)
    if isinstance(data, dict) and isinstance(data.get("items"), list):
        return SingleGroup(group=data)
    return NoMetadata(reason=f"Unsupported supporting_files_metadata shape: {type(data).__name__}")


def _text_key(source: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = _optional_text(source.get(key))
        if value is not None:
            return value
    return None


def _build_group(raw: dict[str, Any], category: str | None, warnings: list[str]) -> MetadataGroup:
    group = MetadataGroup(category=category, title=_text_key(raw, "title"))
    raw_items = raw.get("items")
    if not isinstance(raw_items, list):
        if raw_items is not None:
            warnings.append(f"Group {category!r}: items is not a list, ignored")
        return group
    for index, raw_item in enumerate(raw_items):
        if not isinstance(raw_item, dict):
            warnings.append(f"Group {category!r}: item {index} is not an object, ignored")
            continue
        try:
            group.items.append(MetadataItem.model_validate(raw_item))
        except ValidationError as exc:
            warnings.append(
                f"Group {category!r}: item {index} skipped ({exc.error_count()} validation errors)"
            )
    return group


def normalize_metadata(blob: str | bytes | None) -> NormalizedMetadata:
    payload = parse_metadata(blob)
    result = NormalizedMetadata()

    if isinstance(payload, NoMetadata):
        if payload.reason:
            result.warnings.append(payload.reason)
    elif isinstance(payload, SingleGroup):
        category = _text_key(payload.group, "mode", "type", "category")
        result.groups.append(_build_group(payload.group, category, result.warnings))
    else:
        for index, raw in enumerate(payload.groups):
            if not isinstance(raw, dict):
                result.warnings.append(f"Metadata group {index} is not an object, ignored")
                continue
            category = _text_key(raw, "type", "category")
            result.groups.append(_build_group(raw, category, result.warnings))

    for warning in result.warnings:
        logger.warning(warning)
    return result


def build_lookup(groups: list[MetadataGroup]) -> dict[str, MetadataEntry]:
    """Flatten groups into a filename lookup. Later entries win on duplicates."""
    lookup: dict[str, MetadataEntry] = {}
    for group in groups:
        for item in group.items:
            lookup[item.filename] = MetadataEntry(
                filename=item.filename,
                category=group.category,
                title=group.title,
                label=item.label,
                station=item.station,
                caption=item.caption,
                lat=item.lat,
                lon=item.lon,
            )
    return lookup
