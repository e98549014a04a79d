"""
Application factory and command line entry point for beamdrop
"""

import argparse
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional, Union

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .api import setup_api_routes
from .assets import StaticAssets
from .config import ConfigError, load_config
from .fs import BeamdropError
from .metrics import StatsManager
from .middleware import setup_middleware
from .models import Config, LoggingConfig
from .qr import show_qr_code
from .ui import setup_ui_routes
from .utils import format_host, get_local_ip


logger = logging.getLogger(__name__)


def setup_logging(log_config: LoggingConfig):
    """Setup logging configuration"""

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_config.level.upper(), logging.INFO))

    # Clear existing handlers
    root_logger.handlers.clear()

    # Create formatter
    if log_config.json:
        formatter = logging.Formatter(
            '{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","msg":"%(message)s"}'
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if configured
    if log_config.file:
        log_file = Path(log_config.file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=log_config.max_size_mb * 1024 * 1024,
            backupCount=log_config.backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def create_app(
    shared_root: Union[str, Path],
    config: Optional[Config] = None,
    stats: Optional[StatsManager] = None,
    assets: Optional[StaticAssets] = None,
) -> FastAPI:
    """
    Build the application from its collaborators without binding a port

    Args:
        shared_root: Directory to expose; fixed for the app's lifetime
        config: Loaded configuration, defaults if omitted
        stats: Counter store, a fresh one if omitted
        assets: Frontend bundle, the packaged one if omitted

    Returns:
        FastAPI application ready to be served
    """

    config = config or Config()

    app = FastAPI(
        title=config.ui.title,
        description="Share a local directory with devices on the same network",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )

    # Read-only for every handler
    app.state.shared_root = Path(shared_root).expanduser().resolve()
    app.state.config = config
    app.state.stats = stats or StatsManager()
    app.state.assets = assets or StaticAssets()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_middleware(app)

    @app.exception_handler(BeamdropError)
    async def beamdrop_error_handler(request: Request, exc: BeamdropError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    # Health check endpoint
    @app.get("/healthz")
    async def health_check():
        return {"ok": True, "version": __version__}

    setup_api_routes(app)
    # Catch-all asset route goes last
    setup_ui_routes(app)

    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beamdrop",
        description="Share a local directory with devices on the same network",
    )
    parser.add_argument("--dir", "-d", default=".", help="Directory to share files from")
    parser.add_argument("--no-qr", action="store_true", help="Disable QR code generation")
    parser.add_argument("--config", "-c", default=None, help="Configuration file path")
    parser.add_argument("--host", default=None, help="Host to bind to")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to bind to")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", "-v", action="version", version=f"beamdrop {__version__}")
    parser.add_argument("extra", nargs="*", help=argparse.SUPPRESS)
    return parser


def share_url(host: str, port: int) -> str:
    """URL other devices should open; wildcard binds advertise the LAN address"""
    if host in {"0.0.0.0", "::", ""}:
        host = get_local_ip()
    return f"http://{format_host(host)}:{port}"


def main(argv: Optional[List[str]] = None):
    """Main entry point for running the server"""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.extra:
        parser.print_help()
        return

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"beamdrop: {e}", file=sys.stderr)
        sys.exit(1)

    if args.debug:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)

    shared_dir = Path(args.dir).expanduser()
    if not args.dir or not shared_dir.is_dir():
        logger.error(f"Shared directory does not exist or is not a directory: {args.dir}")
        sys.exit(1)

    # Override with command line args
    host = args.host or config.server.addr
    port = args.port or config.server.port

    logger.info("Starting beamdrop application")
    app = create_app(shared_dir, config=config)

    url = share_url(host, port)
    if not (args.no_qr or config.ui.noQr):
        show_qr_code(url)
    logger.info(f"Server started at {url} sharing directory: {app.state.shared_root}")

    # uvicorn exits the process if the port cannot be bound
    uvicorn.run(
        app,
        host=host,
        port=port,
        timeout_keep_alive=config.server.keepAliveTimeout,
        access_log=False,  # AccessLogMiddleware handles this
        server_header=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
