"""
Data models and constants for beamdrop
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict


DEFAULT_PORT = 7777
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class FileEntry:
    """Directory listing entry as shown to clients"""
    name: str
    is_dir: bool
    size: str
    mod_time: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "isDir": self.is_dir,
            "size": self.size,
            "modTime": self.mod_time,
            "path": self.path,
        }


@dataclass
class ServerStats:
    """Process-wide transfer counters"""
    downloads: int = 0
    requests: int = 0
    uploads: int = 0
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "downloads": self.downloads,
            "requests": self.requests,
            "uploads": self.uploads,
            "startTime": self.start_time.isoformat(),
        }


@dataclass
class ServerConfig:
    """Server configuration"""
    addr: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    keepAliveTimeout: int = 30


@dataclass
class LoggingConfig:
    """Logging configuration"""
    json: bool = False
    file: str = ""
    level: str = "INFO"
    max_size_mb: int = 10
    backup_count: int = 3


@dataclass
class TransferConfig:
    """Upload/download streaming configuration"""
    chunkSize: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.chunkSize <= 0:
            self.chunkSize = DEFAULT_CHUNK_SIZE


@dataclass
class UiConfig:
    """Terminal and frontend options"""
    noQr: bool = False
    title: str = "beamdrop"


@dataclass
class Config:
    """Main configuration container"""
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    ui: UiConfig = field(default_factory=UiConfig)


# Types the stdlib mimetypes table gets wrong or misses on some platforms
MIME_TYPES = {
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.mjs': 'application/javascript',
    '.json': 'application/json',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
    '.png': 'image/png',
    '.webp': 'image/webp',
    '.woff': 'font/woff',
    '.woff2': 'font/woff2',
    '.txt': 'text/plain',
}

# Default MIME type for unknown files
DEFAULT_MIME_TYPE = 'application/octet-stream'
