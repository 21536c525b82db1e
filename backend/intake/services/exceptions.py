"""Error taxonomy for the intake pipeline.

Fatal-batch and query errors propagate to the HTTP layer; per-file and
degraded failures are caught inside the services and reported in results.
"""


class IntakeError(Exception):
    """Base class for intake failures surfaced to callers."""


class SubmissionCreateError(IntakeError):
    """The parent submission row could not be created; no file was touched."""


class SubmissionNotFound(IntakeError, LookupError):
    def __init__(self, submission_id: int):
        super().__init__(f"Submission {submission_id} not found")
        self.submission_id = submission_id


class RelationalStoreError(IntakeError):
    """A query or delete against the relational store failed."""


class ContentStoreError(IntakeError):
    """A content store call failed."""


class ObjectExistsError(ContentStoreError):
    def __init__(self, path: str):
        super().__init__(f"Object already exists: {path}")
        self.path = path
