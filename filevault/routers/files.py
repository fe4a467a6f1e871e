import os
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response, StreamingResponse

from filevault.core.deps import get_storage_service
from filevault.core.errors import MissingField
from filevault.models.files import File as StoredFile
from filevault.models.files import MultiUploadResponse, PaginatedFiles, PresignResponse, UploadResponse
from filevault.services.storage import StorageService

router = APIRouter(tags=["files"])

DOWNLOAD_CHUNK_SIZE = 64 * 1024


def content_disposition(key: str) -> str:
    """
    En-tête "attachment" RFC 6266 / 5987 : `filename` ASCII de repli,
    `filename*` encodé en UTF-8 pour les clés non ASCII.
    """
    filename = os.path.basename(key) or "download"
    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_")
    fallback = fallback.replace("\\", "_").replace('"', "_")
    encoded = quote(filename, safe="")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{encoded}"


def parse_limit(raw: str) -> int:
    # valeur non numérique -> 0, remplacé ensuite par la taille par défaut
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def _to_file(upload: UploadFile) -> StoredFile:
    return StoredFile(
        name=upload.filename or "",
        content=upload.file,
        size=upload.size or 0,
        content_type=upload.content_type or "",
    )


@router.get("/list", response_model=PaginatedFiles)
def list_files(
    bucket: str = Query(""),
    extension: str = Query(""),
    token: str = Query(""),
    limit: str = Query("10"),
    storage: StorageService = Depends(get_storage_service),
):
    return storage.list_files(bucket, extension, token, parse_limit(limit))


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
def upload_file(
    bucket: str = Form(""),
    file: Optional[UploadFile] = File(None),
    storage: StorageService = Depends(get_storage_service),
):
    if file is None:
        raise MissingField("file field is required")

    url = storage.upload_file(bucket, _to_file(file))
    return UploadResponse(url=url)


@router.post("/upload-multiple", response_model=MultiUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_multiple(
    bucket: str = Form(""),
    files: Optional[List[UploadFile]] = File(None),
    storage: StorageService = Depends(get_storage_service),
):
    if not files:
        raise MissingField("no files provided")

    urls = storage.upload_multiple_files(bucket, [_to_file(f) for f in files])
    return MultiUploadResponse(urls=urls)


@router.get("/download")
def download_file(
    bucket: str = Query(""),
    key: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    stream = storage.download_file(bucket, key)

    def iter_content():
        try:
            while True:
                chunk = stream.read(DOWNLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            stream.close()

    return StreamingResponse(
        iter_content(),
        media_type="application/octet-stream",
        headers={"Content-Disposition": content_disposition(key)},
    )


@router.get("/presign", response_model=PresignResponse)
def get_presigned_url(
    bucket: str = Query(""),
    key: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    return PresignResponse(presigned_url=storage.get_download_url(bucket, key))


@router.delete("/delete", status_code=status.HTTP_204_NO_CONTENT)
def delete_file(
    bucket: str = Query(""),
    key: str = Query(""),
    storage: StorageService = Depends(get_storage_service),
):
    storage.delete_file(bucket, key)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
