"""Pairing of uploaded files with categories, labels and metadata entries.

Precedence per file: required slot (by upload field name), then metadata
entry (by original filename), then the variant's field-name prefix
convention, then the bare filename. Every uploaded file gets a record.
"""

import logging
import re
from dataclasses import dataclass

from intake.services.metadata import MetadataEntry
from intake.utils.filesystem import StagedFile

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "supporting"
SCHEDULE_KIND_PREFIXES = ("PERT", "CPM", "PDM")


@dataclass(frozen=True)
class RequiredSlot:
    field: str
    category: str
    label: str


@dataclass(frozen=True)
class Variant:
    name: str
    required_slots: tuple[RequiredSlot, ...]
    # (field-name prefix, category) pairs, checked in order
    field_prefixes: tuple[tuple[str, str], ...] = ()

    def slot_for(self, field_name: str) -> RequiredSlot | None:
        for slot in self.required_slots:
            if slot.field == field_name:
                return slot
        return None


RESUMPTION = Variant(
    name="resumption",
    required_slots=(
        RequiredSlot(
            "required_letter_request",
            "required",
            "Letter Request of the Contractor for Contract Time Resumption",
        ),
        RequiredSlot("required_approved_suspension", "required", "Approved Suspension Order"),
        RequiredSlot(
            "required_certified_contract",
            "required",
            "Certified True Copy of Original Contract",
        ),
    ),
)

SCHEDULE = Variant(
    name="schedule",
    required_slots=(
        RequiredSlot(
            "required_letter_request",
            "required",
            "Letter Request of the Contractor for Approval of Work Schedule",
        ),
        RequiredSlot("required_approved_schedule", "required", "Previously Approved Work Schedule"),
    ),
    field_prefixes=(
        ("original_", "PERT_ORIGINAL"),
        ("revised_", "PERT_REVISED"),
    ),
)

VARIANTS = {v.name: v for v in (RESUMPTION, SCHEDULE)}


def variant_for_kind(kind: str | None) -> Variant:
    """Schedule kinds are ``schedule`` or anything starting with PERT/CPM/PDM."""
    normalized = (kind or "").strip()
    if normalized.lower() == "schedule" or normalized.upper().startswith(SCHEDULE_KIND_PREFIXES):
        return SCHEDULE
    return RESUMPTION


def humanize_field(name: str) -> str:
    words = re.split(r"[_\-\s]+", name)
    return " ".join(w.capitalize() for w in words if w)


@dataclass
class CorrelatedFile:
    upload: StagedFile
    category: str
    label: str | None
    source: str  # slot | metadata | convention | fallback
    title: str | None = None
    station: str | None = None
    caption: str | None = None
    lat: float | None = None
    lon: float | None = None
    # storage path segment when it differs from the category
    path_segment: str | None = None


@dataclass
class CorrelationResult:
    files: list[CorrelatedFile]
    unmatched_metadata: list[str]


def _by_convention(upload: StagedFile, variant: Variant) -> tuple[str, str, str]:
    """Return (category, label, source) from the field name or the filename."""
    field_name = upload.field_name or ""
    for prefix, category in variant.field_prefixes:
        if field_name.startswith(prefix):
            label = humanize_field(field_name[len(prefix):])
            if label:
                return category, label, "convention"
    return DEFAULT_CATEGORY, upload.filename, "fallback"


def correlate_file(upload: StagedFile, lookup: dict[str, MetadataEntry], variant: Variant) -> CorrelatedFile:
    slot = variant.slot_for(upload.field_name)
    if slot is not None:
        return CorrelatedFile(
            upload=upload,
            category=slot.category,
            label=slot.label,
            title=slot.label,
            source="slot",
            path_segment=slot.field,
        )

    category, derived_label, source = _by_convention(upload, variant)
    entry = lookup.get(upload.filename)
    if entry is None:
        return CorrelatedFile(upload=upload, category=category, label=derived_label, source=source)

    return CorrelatedFile(
        upload=upload,
        category=entry.category or category,
        label=entry.label or derived_label,
        title=entry.title,
        station=entry.station,
        caption=entry.caption,
        lat=entry.lat,
        lon=entry.lon,
        source="metadata",
    )


def correlate_files(
    uploads: list[StagedFile],
    lookup: dict[str, MetadataEntry],
    variant: Variant,
) -> CorrelationResult:
    files = [correlate_file(upload, lookup, variant) for upload in uploads]

    uploaded_names = {upload.filename for upload in uploads}
    unmatched = [name for name in lookup if name not in uploaded_names]
    for name in unmatched:
        logger.warning("No uploaded file found for filename %s", name)

    return CorrelationResult(files=files, unmatched_metadata=unmatched)
