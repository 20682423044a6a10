# microtools/routers/files.py
# FastAPI router for file shares

from __future__ import annotations

from typing import Any, BinaryIO, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from fastapi.responses import FileResponse, StreamingResponse

from microtools.bootstrap import Components
from microtools.routers.deps import get_components
from microtools.schemas.common import CreatedResponse
from microtools.services.files_service import FileSharesService, Upload, public_view


router = APIRouter(tags=["Files"])


def get_service(components: Components = Depends(get_components)) -> FileSharesService:
    return components.files


@router.post("/files", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def upload_files(
    files: Optional[List[UploadFile]] = File(None),
    expiry: Optional[int] = Form(None),
    service: FileSharesService = Depends(get_service),
) -> CreatedResponse:
    uploads = [Upload(f.filename or "", f.file) for f in files or []]
    obj = await service.create_share(uploads, expiry_days=expiry)
    return CreatedResponse(id=obj.id, expires_at=obj.expires_at)


@router.get("/files/{share_id}")
async def get_share(share_id: str, service: FileSharesService = Depends(get_service)) -> Dict[str, Any]:
    obj, share = await service.get_share(share_id)
    return {"id": obj.id, "expires_at": obj.expires_at, **public_view(share)}


@router.get("/files/{share_id}/download/{filename}")
async def download_file(share_id: str, filename: str, service: FileSharesService = Depends(get_service)):
    path, shared = await service.file_path(share_id, filename)
    return FileResponse(path, filename=shared.name, media_type="application/octet-stream")


ZIP_CHUNK_SIZE = 64 * 1024


def _iter_file(fileobj: BinaryIO) -> Iterator[bytes]:
    # Sync generator: Starlette drives it from its threadpool.
    try:
        while True:
            chunk = fileobj.read(ZIP_CHUNK_SIZE)
            if not chunk:
                break
            yield chunk
    finally:
        fileobj.close()


@router.get("/files/{share_id}/zip")
async def download_zip(share_id: str, service: FileSharesService = Depends(get_service)):
    archive = await service.build_archive(share_id)
    return StreamingResponse(
        _iter_file(archive),
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="files-{share_id}.zip"'},
    )


@router.delete("/files/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_share(share_id: str, service: FileSharesService = Depends(get_service)) -> Response:
    await service.delete_share(share_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
