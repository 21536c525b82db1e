import logging

from intake.services.content_store import ContentStore

logger = logging.getLogger(__name__)


class SignedUrlIssuer:
    """Issues time-limited URLs for stored paths, masking every failure to None."""

    def __init__(self, store: ContentStore, expires_in: int):
        self.store = store
        self.expires_in = expires_in

    def issue(self, storage_path: str | None) -> str | None:
        if not storage_path:
            return None
        try:
            return self.store.create_signed_url(storage_path, self.expires_in)
        except Exception as exc:
            logger.warning("createSignedUrl failed for %s: %s", storage_path, exc)
            return None
