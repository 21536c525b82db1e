import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from intake.services.content_store import ContentStore
from intake.services.exceptions import ContentStoreError
from intake.services.submission_store import SubmissionRepository

logger = logging.getLogger(__name__)


@dataclass
class DeletionResult:
    submission_id: int
    attachments_deleted: int = 0
    removed_paths: list[str] = field(default_factory=list)
    failed_paths: list[str] = field(default_factory=list)


def delete_submission(db: Session, store: ContentStore, submission_id: int) -> DeletionResult:
    """Remove stored objects, then attachment rows, then the submission row.

    Content store failures never abort the deletion; paths that could not be
    removed come back in ``failed_paths`` so the caller can retry. Relational
    failures raise RelationalStoreError.
    """
    repo = SubmissionRepository(db)
    repo.get_submission(submission_id)
    paths = [a.storage_path for a in repo.list_attachments(submission_id)]

    result = DeletionResult(submission_id=submission_id)
    if paths:
        try:
            result.failed_paths = list(store.remove(paths))
        except ContentStoreError as exc:
            logger.warning("Bulk removal for submission %s failed: %s", submission_id, exc)
            result.failed_paths = list(paths)
    result.removed_paths = [p for p in paths if p not in result.failed_paths]
    if result.failed_paths:
        logger.warning(
            "Submission %s: %d objects could not be removed", submission_id, len(result.failed_paths)
        )

    result.attachments_deleted = repo.delete_submission_tree(submission_id)
    logger.info(
        "Deleted submission %s (%d attachments, %d objects removed)",
        submission_id,
        result.attachments_deleted,
        len(result.removed_paths),
    )
    return result
