from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile

from intake.config import settings
from intake.database import get_db
from intake.dependencies import get_content_store, get_ingest_service, get_url_issuer
from intake.models.submission import Submission
from intake.schemas.submission import (
    AttachmentResponse,
    DeleteResponse,
    FileReportResponse,
    IngestResponse,
    SubmissionDetailResponse,
    SubmissionListResponse,
    SubmissionResponse,
)
from intake.services.content_store import ContentStore
from intake.services.deletion_service import delete_submission as delete_submission_tree
from intake.services.ingest_service import IngestService, SubmissionFields
from intake.services.listing_service import AttachmentView, get_submission_detail, list_submissions
from intake.services.signed_urls import SignedUrlIssuer
from intake.utils.filesystem import StagingArea, UploadTooLarge

router = APIRouter(prefix="/submissions", tags=["submissions"])
upload_router = APIRouter(tags=["submissions"])
schedules_router = APIRouter(prefix="/schedules", tags=["schedules"])

# multipart field -> submission column
FORM_FIELDS = {
    "type": "upload_type",
    "contractorName": "contractor_name",
    "projectName": "project_name",
    "notes": "notes",
    "certifierName": "certifier_name",
    "certifierDesignation": "certifier_designation",
    "certifiedDate": "certified_date",
}
METADATA_FIELD = "supporting_files_metadata"


def _form_text(value) -> str | None:
    if value is None or isinstance(value, UploadFile):
        return None
    return value.strip() or None


def _submission_to_response(submission: Submission, attachment_count: int | None = None) -> SubmissionResponse:
    return SubmissionResponse(
        id=submission.id,
        upload_type=submission.upload_type,
        contractor_name=submission.contractor_name,
        project_name=submission.project_name,
        notes=submission.notes,
        certifier_name=submission.certifier_name,
        certifier_designation=submission.certifier_designation,
        certified_date=submission.certified_date,
        created_at=submission.created_at,
        attachment_count=attachment_count,
    )


def _attachment_to_response(view: AttachmentView) -> AttachmentResponse:
    a = view.attachment
    return AttachmentResponse(
        id=a.id,
        upload_id=a.upload_id,
        doc_type=a.doc_type,
        doc_title=a.doc_title,
        label=a.label,
        filename=a.filename,
        storage_path=a.storage_path,
        station=a.station,
        caption=a.caption,
        latitude=a.latitude,
        longitude=a.longitude,
        file_size_bytes=a.file_size_bytes,
        mime_type=a.mime_type,
        created_at=a.created_at,
        signed_url=view.signed_url,
    )


async def _ingest(request: Request, db: Session, service: IngestService) -> IngestResponse:
    form = await request.form()
    try:
        fields = SubmissionFields(**{attr: _form_text(form.get(key)) for key, attr in FORM_FIELDS.items()})

        metadata_blob = form.get(METADATA_FIELD)
        if isinstance(metadata_blob, UploadFile):
            metadata_blob = (await metadata_blob.read()).decode("utf-8", errors="replace")

        uploads = [
            (key, value)
            for key, value in form.multi_items()
            if isinstance(value, UploadFile) and key != METADATA_FIELD
        ]

        with StagingArea(settings.staging_dir, settings.max_upload_bytes) as staging:
            for field_name, upload in uploads:
                staging.stage(field_name, upload.filename, upload.file, upload.content_type)
            result = service.ingest(db, fields, staging.files, metadata_blob)
    except UploadTooLarge as exc:
        raise HTTPException(status_code=413, detail=str(exc)) from exc
    finally:
        await form.close()

    return IngestResponse(
        upload_id=result.submission_id,
        stored_count=result.stored_count,
        failed_count=result.failed_count,
        files=[FileReportResponse(**vars(report)) for report in result.files],
        unmatched_metadata=result.unmatched_metadata,
        warnings=result.warnings,
    )


@router.post("", response_model=IngestResponse, status_code=201)
async def create_submission(
    request: Request,
    db: Session = Depends(get_db),
    service: IngestService = Depends(get_ingest_service),
):
    return await _ingest(request, db, service)


@upload_router.post("/upload", response_model=IngestResponse)
async def upload(
    request: Request,
    db: Session = Depends(get_db),
    service: IngestService = Depends(get_ingest_service),
):
    """Same as POST /submissions, kept under the original route name."""
    return await _ingest(request, db, service)


@router.get("", response_model=SubmissionListResponse)
async def list_all_submissions(
    category: str | None = None,
    q: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    include_counts: bool = False,
    db: Session = Depends(get_db),
):
    result = list_submissions(
        db, category=category, q=q, page=page, per_page=per_page, include_counts=include_counts
    )
    return SubmissionListResponse(
        submissions=[
            _submission_to_response(s, result.attachment_counts.get(s.id)) for s in result.items
        ],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
    )


@schedules_router.get("", response_model=SubmissionListResponse)
async def list_schedules(
    category: str | None = None,
    q: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    result = list_submissions(
        db,
        category=category,
        q=q,
        page=page,
        per_page=per_page,
        include_counts=True,
        schedule_only=True,
    )
    return SubmissionListResponse(
        submissions=[_submission_to_response(s, result.attachment_counts[s.id]) for s in result.items],
        total=result.total,
        page=result.page,
        per_page=result.per_page,
    )


@router.get("/{submission_id}", response_model=SubmissionDetailResponse)
async def get_submission(
    submission_id: int,
    grouped: bool = False,
    db: Session = Depends(get_db),
    issuer: SignedUrlIssuer = Depends(get_url_issuer),
):
    detail = get_submission_detail(db, issuer, submission_id)
    response = SubmissionDetailResponse(
        submission=_submission_to_response(detail.submission, len(detail.attachments)),
        attachments=[_attachment_to_response(v) for v in detail.attachments],
    )
    if grouped:
        response.groups = {
            category: [_attachment_to_response(v) for v in views]
            for category, views in detail.grouped().items()
        }
    return response


@router.delete("/{submission_id}", response_model=DeleteResponse)
async def delete_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    store: ContentStore = Depends(get_content_store),
):
    result = delete_submission_tree(db, store, submission_id)
    return DeleteResponse(
        id=result.submission_id,
        attachments_deleted=result.attachments_deleted,
        failed_paths=result.failed_paths,
    )
