"""
Safe filesystem operations for beamdrop

Every path that reaches the filesystem is produced by resolve_path.
The helpers below accept only those resolved paths, or resolve the raw
client input themselves as their first step.
"""

import os
import logging
import posixpath
import stat as stat_module
from pathlib import Path, PurePath
from typing import AsyncIterator, List, Tuple, Union

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

from .models import DEFAULT_CHUNK_SIZE, FileEntry
from .utils import (
    format_file_size,
    format_mod_time,
    join_client_path,
    normalize_path,
    timestamp_to_iso,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class BeamdropError(Exception):
    """Base error carrying the HTTP status it maps to"""

    status_code = 500

    def __init__(self, message: str, *, status_code: int = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidPathError(BeamdropError):
    """Raised when a client path escapes or malforms the shared root"""
    status_code = 400


class NotFoundError(BeamdropError):
    """Raised when a file or directory does not exist"""
    status_code = 404


class FileSystemError(BeamdropError):
    """Read, write or stat failure"""
    status_code = 500


class BadRequestError(BeamdropError):
    """Malformed upload payload"""
    status_code = 400


def _is_within(root: PurePath, candidate: PurePath) -> bool:
    """Component-wise containment; the candidate may be the root itself"""
    root_parts = root.parts
    return candidate.parts[:len(root_parts)] == root_parts


def resolve_path(shared_root: PathLike, raw_path: str) -> Path:
    """
    Map an untrusted client path onto the shared root

    Pure path arithmetic: nothing is stat'ed, opened or symlink-resolved.

    Args:
        shared_root: Directory exposed by the server
        raw_path: Client supplied path, relative or rooted, either separator

    Returns:
        Absolute path lexically inside shared_root

    Raises:
        InvalidPathError: If the path would escape shared_root
    """

    raw_path = normalize_path(raw_path or "")
    if "\x00" in raw_path:
        raise InvalidPathError("invalid path")

    clean = posixpath.normpath(raw_path) if raw_path else "."

    # A rooted path is taken relative to the share, after ".." at "/" collapsed
    clean = clean.lstrip('/') or "."

    root = os.path.abspath(shared_root)
    candidate = os.path.abspath(os.path.join(root, clean))

    if not _is_within(PurePath(root), PurePath(candidate)):
        logger.warning(f"Path traversal rejected: {raw_path!r}")
        raise InvalidPathError("invalid path")

    return Path(candidate)


async def list_directory(dir_path: Path, request_path: str) -> List[FileEntry]:
    """
    List the direct children of a resolved directory

    Entries whose metadata cannot be read are skipped. Directories come
    first, then files, each sorted by name ignoring case.

    Args:
        dir_path: Directory returned by resolve_path
        request_path: Path as the client sent it, used to build entry paths

    Returns:
        List of FileEntry objects

    Raises:
        NotFoundError: If the directory is missing
        FileSystemError: If the directory cannot be read
    """

    shown = request_path or "/"

    if not await aiofiles.os.path.exists(dir_path):
        raise NotFoundError(f"Directory not found: {shown}")

    if not await aiofiles.os.path.isdir(dir_path):
        raise NotFoundError(f"Not a directory: {shown}")

    try:
        names = await aiofiles.os.listdir(dir_path)
    except OSError as e:
        logger.error(f"Failed to list {dir_path}: {e}")
        raise FileSystemError(f"Failed to list directory: {e.strerror or e}")

    entries = []
    for name in names:
        entry_path = dir_path / name

        try:
            st = await aiofiles.os.stat(entry_path)
        except OSError as e:
            logger.warning(f"Failed to stat {entry_path}: {e}")
            continue

        entries.append(FileEntry(
            name=name,
            is_dir=stat_module.S_ISDIR(st.st_mode),
            size=format_file_size(st.st_size),
            mod_time=format_mod_time(timestamp_to_iso(st.st_mtime)),
            path=join_client_path(request_path, name),
        ))

    entries.sort(key=lambda x: (not x.is_dir, x.name.lower()))
    return entries


class DownloadStream:
    """Single pass over an open file; the handle is closed on exhaustion, error or cancellation"""

    def __init__(self, handle, size: int, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self._handle = handle
        self._closed = False
        self.size = size
        self.chunk_size = chunk_size
        self.bytes_sent = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await self._handle.read(self.chunk_size)
                if not chunk:
                    break
                self.bytes_sent += len(chunk)
                yield chunk
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._handle.close()

    @property
    def closed(self) -> bool:
        return self._closed


async def open_file_for_download(
    shared_root: PathLike,
    filename: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tuple[Path, DownloadStream]:
    """
    Open a file under the shared root for streaming

    Args:
        shared_root: Directory exposed by the server
        filename: Client supplied relative file path
        chunk_size: Read size per chunk

    Returns:
        (resolved_path, stream) tuple; the file is already open

    Raises:
        InvalidPathError: If the path escapes the root or names a directory
        NotFoundError: If the file does not exist
        FileSystemError: If the file cannot be opened
    """

    file_path = resolve_path(shared_root, filename)

    if not await aiofiles.os.path.exists(file_path):
        raise NotFoundError("File not found")

    if await aiofiles.os.path.isdir(file_path):
        raise InvalidPathError("invalid path")

    try:
        st = await aiofiles.os.stat(file_path)
        handle = await aiofiles.open(file_path, 'rb')
    except FileNotFoundError:
        raise NotFoundError("File not found")
    except OSError as e:
        logger.error(f"Failed to open file {file_path}: {e}")
        raise FileSystemError("Failed to open file")

    return file_path, DownloadStream(handle, st.st_size, chunk_size)


async def _remove_partial(file_path: Path) -> None:
    try:
        if await aiofiles.os.path.exists(file_path):
            await aiofiles.os.remove(file_path)
    except OSError as e:
        logger.warning(f"Failed to remove partial upload {file_path}: {e}")


async def save_uploaded_file(
    shared_root: PathLike,
    upload_file: UploadFile,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Tuple[str, int]:
    """
    Persist an uploaded file under the shared root

    An existing file of the same name is overwritten. Two uploads of the
    same name at once are not serialized and may interleave their bytes.

    Args:
        shared_root: Directory exposed by the server
        upload_file: Multipart file part; its filename is untrusted
        chunk_size: Copy size per chunk

    Returns:
        (filename, bytes_written) tuple

    Raises:
        BadRequestError: If the part has no usable filename
        InvalidPathError: If the filename escapes the root
        FileSystemError: If the file cannot be created or fully written
    """

    filename = (upload_file.filename or "").strip()
    if not filename:
        raise BadRequestError("Invalid upload")

    file_path = resolve_path(shared_root, filename)
    if file_path == Path(os.path.abspath(shared_root)):
        raise BadRequestError("Invalid upload")

    try:
        out = await aiofiles.open(file_path, 'wb')
    except OSError as e:
        logger.error(f"Failed to create file {file_path}: {e}")
        raise FileSystemError("Failed to save file")

    bytes_written = 0
    try:
        try:
            while True:
                chunk = await upload_file.read(chunk_size)
                if not chunk:
                    break
                await out.write(chunk)
                bytes_written += len(chunk)
        finally:
            await out.close()
    except OSError as e:
        logger.error(f"Failed to write file {file_path}: {e}")
        await _remove_partial(file_path)
        raise FileSystemError("Failed to write file")

    logger.info(f"Uploaded file: {filename} ({bytes_written} bytes)")
    return filename, bytes_written
