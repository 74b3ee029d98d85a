from typing import Optional

from fastapi import APIRouter, Depends, File, Query, UploadFile

from disk_backend.container import Services
from disk_backend.errors import ValidationError
from disk_backend.routers.deps import get_current_identity, get_services
from disk_backend.schemas.files import DeleteFileRequest, DeleteResult, UploadResult
from disk_backend.schemas.users import Envelope
from disk_backend.services.guard import Identity

router = APIRouter(prefix="/files", tags=["files"])


@router.post("/upload", response_model=Envelope)
def upload_file(
    file: UploadFile = File(...),
    dir: Optional[str] = Query(default=None, max_length=128),
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Envelope:
    if not file.filename:
        raise ValidationError("No file was uploaded")
    # One byte past the limit is enough to reject oversized uploads.
    content = file.file.read(services.files.max_bytes + 1)
    result = services.files.save(identity.username, file.filename, content, subdir=dir)
    return Envelope(data=UploadResult(**result))


@router.delete("/delete", response_model=Envelope)
def delete_file(
    payload: DeleteFileRequest,
    identity: Identity = Depends(get_current_identity),
    services: Services = Depends(get_services),
) -> Envelope:
    deleted = services.files.delete(identity.username, payload.file_path)
    message = "File deleted" if deleted else "File could not be deleted or does not exist"
    return Envelope(data=DeleteResult(message=message, success=deleted))
