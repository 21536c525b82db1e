from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse

from intake.dependencies import get_content_store
from intake.services.content_store import LocalContentStore
from intake.services.exceptions import ContentStoreError

router = APIRouter(prefix="/objects", tags=["objects"])


@router.get("/{storage_path:path}")
async def download_object(
    storage_path: str,
    expires: int = Query(...),
    signature: str = Query(..., min_length=1),
    store: LocalContentStore = Depends(get_content_store),
):
    """Serve a stored object to the holder of a valid, unexpired signed URL."""
    if not store.verify_signature(storage_path, expires, signature):
        raise HTTPException(status_code=403, detail="Invalid or expired signature")
    try:
        full_path = store.object_path(storage_path)
    except ContentStoreError as exc:
        raise HTTPException(status_code=404, detail="Object not found") from exc

    return FileResponse(path=str(full_path), filename=full_path.name)
