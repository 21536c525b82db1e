from fastapi import Depends, Request

from intake.config import settings
from intake.services.content_store import LocalContentStore
from intake.services.ingest_service import IngestService
from intake.services.signed_urls import SignedUrlIssuer


def create_content_store() -> LocalContentStore:
    return LocalContentStore(
        root=settings.objects_dir,
        secret=settings.signing_secret,
        base_url=f"{settings.public_base_url}{settings.api_prefix}/objects",
    )


def get_content_store(request: Request) -> LocalContentStore:
    return request.app.state.content_store


def get_url_issuer(request: Request) -> SignedUrlIssuer:
    return request.app.state.url_issuer


def get_ingest_service(
    store: LocalContentStore = Depends(get_content_store),
    issuer: SignedUrlIssuer = Depends(get_url_issuer),
) -> IngestService:
    return IngestService(
        store,
        issuer,
        namespace=settings.storage_namespace,
        workers=settings.upload_workers,
        timestamp_paths=settings.timestamp_storage_paths,
    )
