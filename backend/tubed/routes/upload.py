"""Upload API route."""
from typing import Optional
from fastapi import APIRouter, Depends, UploadFile, File as FastAPIFile

from tubed.auth import require_auth
from tubed.dependencies import get_file_service
from tubed.schemas.file import FileResponse, UploadResponse
from tubed.services.file_service import FileService, UploadPayload

router = APIRouter(prefix="/api/upload", tags=["upload"], dependencies=[Depends(require_auth)])


@router.post("", response_model=UploadResponse)
async def upload_files(
    files: Optional[list[UploadFile]] = FastAPIFile(None),
    service: FileService = Depends(get_file_service),
):
    """Upload one or more files under the ``files`` form field."""
    payloads = []
    for upload in files or []:
        payloads.append(
            UploadPayload(
                filename=upload.filename or "unnamed",
                content_type=upload.content_type,
                data=await upload.read(),
            )
        )

    records = await service.upload(payloads)
    return UploadResponse(
        files=[FileResponse.model_validate(r) for r in records],
        message=f"Successfully uploaded {len(records)} file(s)",
    )
