from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from intake.models.attachment import Attachment
from intake.models.submission import Submission
from intake.services.signed_urls import SignedUrlIssuer
from intake.services.submission_store import SubmissionRepository


@dataclass
class SubmissionPage:
    items: list[Submission]
    total: int
    page: int
    per_page: int
    attachment_counts: dict[int, int] = field(default_factory=dict)


@dataclass
class AttachmentView:
    attachment: Attachment
    signed_url: str | None


@dataclass
class SubmissionDetail:
    submission: Submission
    attachments: list[AttachmentView]

    def grouped(self) -> dict[str, list[AttachmentView]]:
        groups: dict[str, list[AttachmentView]] = {}
        for view in self.attachments:
            groups.setdefault(view.attachment.doc_type, []).append(view)
        return groups


def list_submissions(
    db: Session,
    category: str | None = None,
    q: str | None = None,
    page: int = 1,
    per_page: int = 20,
    include_counts: bool = False,
    schedule_only: bool = False,
) -> SubmissionPage:
    if page < 1 or per_page < 1:
        raise ValueError("page and per_page must be positive integers")

    repo = SubmissionRepository(db)
    rows, total = repo.query_submissions(
        category=category,
        q=q,
        offset=(page - 1) * per_page,
        limit=per_page,
        schedule_only=schedule_only,
    )
    result = SubmissionPage(items=rows, total=total, page=page, per_page=per_page)
    if include_counts:
        result.attachment_counts = {s.id: repo.count_attachments(s.id) for s in rows}
    return result


def get_submission_detail(db: Session, issuer: SignedUrlIssuer, submission_id: int) -> SubmissionDetail:
    """Load a submission with its attachments; URLs are issued fresh on every call."""
    repo = SubmissionRepository(db)
    submission = repo.get_submission(submission_id)
    views = [
        AttachmentView(attachment=a, signed_url=issuer.issue(a.storage_path))
        for a in repo.list_attachments(submission_id)
    ]
    return SubmissionDetail(submission=submission, attachments=views)
