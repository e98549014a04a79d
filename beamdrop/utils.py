"""
Utility functions for beamdrop
"""

import logging
import mimetypes
import posixpath
import socket
from datetime import datetime
from pathlib import Path
from typing import List

from .models import MIME_TYPES, DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)


def get_mime_type(file_path: Path) -> str:
    """Get MIME type for file"""
    suffix = file_path.suffix.lower()

    # Check our custom MIME types first
    if suffix in MIME_TYPES:
        return MIME_TYPES[suffix]

    # Fall back to system mimetypes
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or DEFAULT_MIME_TYPE


def format_file_size(size_bytes: int) -> str:
    """
    Format file size with binary units

    Bytes are shown as an integer, larger units with two decimals.
    The thresholds are strict, so 1048575 renders as "1024.00 KB".
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 ** 2:
        return f"{size_bytes / 1024:.2f} KB"
    elif size_bytes < 1024 ** 3:
        return f"{size_bytes / 1024 ** 2:.2f} MB"
    else:
        return f"{size_bytes / 1024 ** 3:.2f} GB"


def format_mod_time(mod_time: str) -> str:
    """Canonicalize an ISO-8601 timestamp, returning the input unchanged if it does not parse"""
    try:
        dt = datetime.fromisoformat(mod_time)
    except (TypeError, ValueError):
        return mod_time
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def timestamp_to_iso(timestamp: float) -> str:
    """Render a POSIX timestamp as a local ISO-8601 string with offset"""
    return datetime.fromtimestamp(timestamp).astimezone().isoformat()


def normalize_path(path: str) -> str:
    """Normalize path separators for cross-platform compatibility"""
    return path.replace('\\', '/')


def join_client_path(request_path: str, name: str) -> str:
    """
    Build the client-facing path of a listing entry

    Args:
        request_path: Path the client asked to list, as sent
        name: Base name of the entry

    Returns:
        Slash separated relative path, never an absolute filesystem location
    """
    base = normalize_path(request_path or "").strip()
    joined = posixpath.normpath(posixpath.join(base, name)) if base else name

    # posixpath keeps a leading "//" verbatim
    if joined.startswith('/'):
        joined = '/' + joined.lstrip('/')
    return joined


def format_host(address: str) -> str:
    """Return host formatted for URLs, wrapping IPv6 in brackets."""
    if ":" in address and not address.startswith("["):
        return f"[{address}]"
    return address


def _candidate_addresses() -> List[str]:
    """Collect IPv4 addresses this host may be reachable on, best guess first"""
    addresses: List[str] = []

    # UDP connect trick to learn the outbound interface; nothing is sent
    for target in (("8.8.8.8", 80), ("1.1.1.1", 80)):
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.connect(target)
                addresses.append(sock.getsockname()[0])
        except OSError:
            continue

    try:
        infos = socket.getaddrinfo(socket.gethostname(), None, socket.AF_INET, socket.SOCK_STREAM)
    except socket.gaierror:
        infos = []

    for info in infos:
        addresses.append(info[4][0])

    return addresses


def get_local_ip() -> str:
    """Return the first non-loopback IPv4 address, or "localhost" if there is none"""
    logger.debug("Detecting local IP address")

    for addr in _candidate_addresses():
        if addr and not addr.startswith("127.") and addr != "0.0.0.0":
            logger.debug(f"Found local IP: {addr}")
            return addr

    logger.warning("No local IP found, using localhost")
    return "localhost"


def format_duration(seconds: float) -> str:
    """Format duration in seconds to human readable string"""
    if seconds < 1:
        return f"{seconds*1000:.1f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    else:
        minutes = int(seconds // 60)
        secs = int(seconds % 60)
        return f"{minutes}m{secs}s"
