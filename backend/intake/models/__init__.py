from intake.models.submission import Submission
from intake.models.attachment import Attachment

__all__ = ["Submission", "Attachment"]
