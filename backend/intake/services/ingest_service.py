"""Batch ingestion: one submission row, then one stored object and one
attachment row per uploaded file.

The submission is committed before any file is written. Each file is then
handled on its own: a failed write or insert is recorded on that file's
report and the remaining files carry on. Object writes and URL issuance run
on a thread pool; attachment rows are written afterwards on the caller's
session, in upload order.
"""

import concurrent.futures
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePosixPath

from sqlalchemy.orm import Session

from intake.services.content_store import ContentStore
from intake.services.correlation import CorrelatedFile, correlate_files, variant_for_kind
from intake.services.exceptions import ContentStoreError, RelationalStoreError
from intake.services.metadata import normalize_metadata
from intake.services.signed_urls import SignedUrlIssuer
from intake.services.submission_store import SubmissionRepository
from intake.utils.filesystem import StagedFile, sanitize_filename

logger = logging.getLogger(__name__)


def derive_storage_path(
    namespace: str,
    submission_id: int,
    category: str,
    filename: str,
    stamp: str | None = None,
) -> str:
    """Build ``<namespace>/<submission-id>/<category>/<filename>``.

    Pure function of its arguments; ``stamp`` prefixes the filename when given.
    """
    basename = PurePosixPath(filename.replace("\\", "/")).name
    safe_name = sanitize_filename(basename)
    if stamp:
        safe_name = f"{stamp}_{safe_name}"
    return f"{namespace}/{submission_id}/{sanitize_filename(category)}/{safe_name}"


@dataclass
class SubmissionFields:
    upload_type: str | None = None
    contractor_name: str | None = None
    project_name: str | None = None
    notes: str | None = None
    certifier_name: str | None = None
    certifier_designation: str | None = None
    certified_date: str | None = None


@dataclass
class FileReport:
    filename: str
    field_name: str
    category: str
    label: str | None
    title: str | None = None
    station: str | None = None
    caption: str | None = None
    lat: float | None = None
    lon: float | None = None
    storage_path: str | None = None
    signed_url: str | None = None
    attachment_id: int | None = None
    error: str | None = None


@dataclass
class IngestResult:
    submission_id: int
    files: list[FileReport] = field(default_factory=list)
    unmatched_metadata: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def stored_count(self) -> int:
        return sum(1 for f in self.files if f.error is None)

    @property
    def failed_count(self) -> int:
        return sum(1 for f in self.files if f.error is not None)


def _report_for(item: CorrelatedFile) -> FileReport:
    return FileReport(
        filename=item.upload.filename,
        field_name=item.upload.field_name,
        category=item.category,
        label=item.label,
        title=item.title,
        station=item.station,
        caption=item.caption,
        lat=item.lat,
        lon=item.lon,
    )


class IngestService:
    def __init__(
        self,
        store: ContentStore,
        issuer: SignedUrlIssuer,
        namespace: str = "uploads",
        workers: int = 4,
        timestamp_paths: bool = False,
    ):
        self.store = store
        self.issuer = issuer
        self.namespace = namespace
        self.workers = max(1, workers)
        self.timestamp_paths = timestamp_paths

    def _storage_path(self, submission_id: int, item: CorrelatedFile) -> str:
        stamp = None
        if self.timestamp_paths:
            now = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
            stamp = f"{now}-{uuid.uuid4().hex[:8]}"
        segment = item.path_segment or item.category
        return derive_storage_path(self.namespace, submission_id, segment, item.upload.filename, stamp)

    def _store_one(self, submission_id: int, item: CorrelatedFile) -> tuple[str, str | None]:
        path = self._storage_path(submission_id, item)
        with item.upload.open() as fh:
            stored_path = self.store.put_object(path, fh) or path
        return stored_path, self.issuer.issue(stored_path)

    def _store_all(self, submission_id: int, items: list[CorrelatedFile], reports: list[FileReport]) -> None:
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {
                executor.submit(self._store_one, submission_id, item): report
                for item, report in zip(items, reports)
            }
            for future in concurrent.futures.as_completed(futures):
                report = futures[future]
                try:
                    report.storage_path, report.signed_url = future.result()
                except (ContentStoreError, OSError) as exc:
                    logger.error("Upload of %s failed: %s", report.filename, exc)
                    report.error = str(exc)
                except Exception as exc:
                    logger.exception("Unexpected content store error for %s", report.filename)
                    report.error = str(exc) or exc.__class__.__name__

    def _discard(self, storage_path: str) -> None:
        failed = self.store.remove([storage_path])
        if failed:
            logger.warning("Orphaned object left in content store: %s", storage_path)

    def ingest(
        self,
        db: Session,
        fields: SubmissionFields,
        uploads: list[StagedFile],
        metadata_blob: str | None = None,
    ) -> IngestResult:
        """Create the submission and store every uploaded file.

        Raises SubmissionCreateError if the submission row cannot be written;
        per-file failures are returned on the matching ``FileReport``.
        """
        metadata = normalize_metadata(metadata_blob)
        variant = variant_for_kind(fields.upload_type)
        correlation = correlate_files(uploads, metadata.lookup, variant)

        repo = SubmissionRepository(db)
        submission = repo.create_submission(**vars(fields))
        result = IngestResult(
            submission_id=submission.id,
            unmatched_metadata=correlation.unmatched_metadata,
            warnings=list(metadata.warnings),
        )
        result.files = [_report_for(item) for item in correlation.files]

        if correlation.files:
            self._store_all(submission.id, correlation.files, result.files)

        for item, report in zip(correlation.files, result.files):
            if report.error is not None:
                continue
            try:
                attachment = repo.add_attachment(
                    upload_id=submission.id,
                    doc_type=report.category,
                    doc_title=report.title,
                    label=report.label,
                    filename=report.filename,
                    storage_path=report.storage_path,
                    station=report.station,
                    caption=report.caption,
                    latitude=report.lat,
                    longitude=report.lon,
                    file_size_bytes=item.upload.size_bytes,
                    mime_type=item.upload.content_type,
                    file_hash=item.upload.file_hash,
                )
            except RelationalStoreError as exc:
                logger.error("Recording %s failed: %s", report.filename, exc)
                self._discard(report.storage_path)
                report.error = str(exc)
                report.storage_path = None
                report.signed_url = None
                continue
            report.attachment_id = attachment.id

        logger.info(
            "Submission %s (%s): %d stored, %d failed, %d unmatched metadata entries",
            submission.id,
            variant.name,
            result.stored_count,
            result.failed_count,
            len(result.unmatched_metadata),
        )
        return result
