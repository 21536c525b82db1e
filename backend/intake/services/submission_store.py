from datetime import datetime, timezone

from sqlalchemy import func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from intake.models.attachment import Attachment
from intake.models.submission import Submission
from intake.services.correlation import SCHEDULE_KIND_PREFIXES
from intake.services.exceptions import (
    RelationalStoreError,
    SubmissionCreateError,
    SubmissionNotFound,
)


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SubmissionRepository:
    """Relational store access for submissions and their attachments."""

    def __init__(self, db: Session):
        self.db = db

    def create_submission(self, **fields) -> Submission:
        submission = Submission(created_at=utc_now(), **fields)
        self.db.add(submission)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise SubmissionCreateError(f"Could not create submission: {exc}") from exc
        self.db.refresh(submission)
        return submission

    def add_attachment(self, **fields) -> Attachment:
        attachment = Attachment(created_at=utc_now(), **fields)
        self.db.add(attachment)
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RelationalStoreError(f"Could not record attachment: {exc}") from exc
        self.db.refresh(attachment)
        return attachment

    def get_submission(self, submission_id: int) -> Submission:
        try:
            submission = self.db.query(Submission).filter(Submission.id == submission_id).first()
        except SQLAlchemyError as exc:
            raise RelationalStoreError(str(exc)) from exc
        if not submission:
            raise SubmissionNotFound(submission_id)
        return submission

    def list_attachments(self, submission_id: int) -> list[Attachment]:
        try:
            return (
                self.db.query(Attachment)
                .filter(Attachment.upload_id == submission_id)
                .order_by(Attachment.id)
                .all()
            )
        except SQLAlchemyError as exc:
            raise RelationalStoreError(str(exc)) from exc

    def count_attachments(self, submission_id: int) -> int:
        try:
            return (
                self.db.query(func.count(Attachment.id))
                .filter(Attachment.upload_id == submission_id)
                .scalar()
            )
        except SQLAlchemyError as exc:
            raise RelationalStoreError(str(exc)) from exc

    def query_submissions(
        self,
        category: str | None = None,
        q: str | None = None,
        offset: int = 0,
        limit: int = 20,
        schedule_only: bool = False,
    ) -> tuple[list[Submission], int]:
        query = self.db.query(Submission)
        if schedule_only:
            query = query.filter(
                or_(
                    Submission.upload_type.ilike("schedule"),
                    *(Submission.upload_type.ilike(f"{prefix}%") for prefix in SCHEDULE_KIND_PREFIXES),
                )
            )
        if category:
            query = query.filter(Submission.upload_type.ilike(f"%{category}%"))
        if q:
            query = query.filter(
                Submission.contractor_name.ilike(f"%{q}%")
                | Submission.project_name.ilike(f"%{q}%")
            )
        try:
            total = query.count()
            rows = (
                query.order_by(Submission.created_at.desc(), Submission.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            raise RelationalStoreError(str(exc)) from exc
        return rows, total

    def delete_submission_tree(self, submission_id: int) -> int:
        """Delete attachment rows, then the submission row, in one commit."""
        try:
            removed = (
                self.db.query(Attachment)
                .filter(Attachment.upload_id == submission_id)
                .delete(synchronize_session=False)
            )
            self.db.query(Submission).filter(Submission.id == submission_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise RelationalStoreError(f"Could not delete submission {submission_id}: {exc}") from exc
        self.db.expire_all()
        return removed
