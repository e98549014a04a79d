"""
API routes for beamdrop
"""

import logging
from pathlib import Path
from urllib.parse import quote

import aiofiles.os
from fastapi import APIRouter, Depends, Request
from fastapi.responses import FileResponse, PlainTextResponse, StreamingResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from .fs import (
    BadRequestError,
    DownloadStream,
    NotFoundError,
    list_directory,
    open_file_for_download,
    resolve_path,
    save_uploaded_file,
)
from .metrics import StatsManager
from .utils import get_mime_type

logger = logging.getLogger(__name__)

# API router
api_router = APIRouter(tags=["api"])


def get_shared_root(request: Request) -> Path:
    return request.app.state.shared_root


def get_stats(request: Request) -> StatsManager:
    return request.app.state.stats


def get_chunk_size(request: Request) -> int:
    return request.app.state.config.transfer.chunkSize


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and an RFC 5987 UTF-8 name"""
    fallback_name = "".join(
        ch if 32 <= ord(ch) < 127 and ch not in {'"', '\\'} else "_"
        for ch in filename
    ) or "download"
    return f"attachment; filename=\"{fallback_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


@api_router.get("/stats")
async def get_server_stats(stats: StatsManager = Depends(get_stats)):
    """Return request and transfer counters"""
    return stats.snapshot()


@api_router.get("/files")
async def list_files(
    path: str = "",
    shared_root: Path = Depends(get_shared_root),
    stats: StatsManager = Depends(get_stats),
):
    """List a directory, or serve the file itself when the path names one"""

    logger.debug(f"Listing files from directory: {path or '/'}")
    target = resolve_path(shared_root, path)

    if await aiofiles.os.path.isfile(target):
        stats.increment_downloads()
        return FileResponse(target, media_type=get_mime_type(target))

    files = await list_directory(target, path)
    return [f.to_dict() for f in files]


def _finish_download(stream: DownloadStream, filename: str):
    async def finish():
        await stream.aclose()
        if stream.bytes_sent == stream.size:
            logger.info(f"Download completed for file: {filename}")
        else:
            logger.warning(
                f"Download of {filename} ended after {stream.bytes_sent} of {stream.size} bytes"
            )
    return finish


@api_router.get("/download")
async def download_file(
    file: str = "",
    shared_root: Path = Depends(get_shared_root),
    stats: StatsManager = Depends(get_stats),
    chunk_size: int = Depends(get_chunk_size),
):
    """Stream a single file as an attachment"""

    logger.info(f"Download request for file: {file}")

    try:
        file_path, stream = await open_file_for_download(shared_root, file, chunk_size)
    except NotFoundError:
        logger.error(f"Download target not found: {file}")
        return PlainTextResponse("File not found", status_code=404)

    stats.increment_downloads()
    headers = {
        "Content-Length": str(stream.size),
        "Content-Disposition": content_disposition(file_path.name),
    }

    return StreamingResponse(
        stream,
        media_type="application/octet-stream",
        headers=headers,
        background=BackgroundTask(_finish_download(stream, file)),
    )


@api_router.post("/upload")
async def upload_file(
    request: Request,
    shared_root: Path = Depends(get_shared_root),
    stats: StatsManager = Depends(get_stats),
    chunk_size: int = Depends(get_chunk_size),
):
    """Accept exactly one multipart file field named "file" """

    logger.info("Upload request received")

    try:
        form = await request.form()
    except (StarletteHTTPException, MultiPartException) as e:
        logger.error(f"Invalid upload request: {e}")
        raise BadRequestError("Invalid upload")

    try:
        parts = form.getlist("file")
        if len(parts) != 1 or not isinstance(parts[0], UploadFile):
            logger.error(f"Invalid upload request: expected one file part, got {len(parts)}")
            raise BadRequestError("Invalid upload")

        filename, bytes_written = await save_uploaded_file(shared_root, parts[0], chunk_size)
    finally:
        await form.close()

    stats.increment_uploads()
    logger.info(f"File uploaded successfully: {filename} ({bytes_written} bytes)")
    return {"message": "Uploaded", "file": filename}


def setup_api_routes(app):
    """Setup API routes"""
    app.include_router(api_router)
    logger.debug("API routes setup complete")
