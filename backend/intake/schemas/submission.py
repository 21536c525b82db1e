from pydantic import BaseModel, ConfigDict, Field


class FileReportResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

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
    signed_url: str | None = Field(default=None, alias="signedUrl")
    attachment_id: int | None = None
    error: str | None = None


class IngestResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    upload_id: int = Field(alias="uploadId")
    stored_count: int
    failed_count: int
    files: list[FileReportResponse]
    unmatched_metadata: list[str] = []
    warnings: list[str] = []


class SubmissionResponse(BaseModel):
    id: int
    upload_type: str | None
    contractor_name: str | None
    project_name: str | None
    notes: str | None
    certifier_name: str | None
    certifier_designation: str | None
    certified_date: str | None
    created_at: str
    attachment_count: int | None = None


class SubmissionListResponse(BaseModel):
    submissions: list[SubmissionResponse]
    total: int
    page: int
    per_page: int


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    upload_id: int
    doc_type: str
    doc_title: str | None
    label: str | None
    filename: str
    storage_path: str
    station: str | None
    caption: str | None
    latitude: float | None
    longitude: float | None
    file_size_bytes: int | None
    mime_type: str | None
    created_at: str
    signed_url: str | None = Field(default=None, alias="signedUrl")


class SubmissionDetailResponse(BaseModel):
    submission: SubmissionResponse
    attachments: list[AttachmentResponse]
    groups: dict[str, list[AttachmentResponse]] | None = None


class DeleteResponse(BaseModel):
    ok: bool = True
    id: int
    attachments_deleted: int
    failed_paths: list[str] = []
