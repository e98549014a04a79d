"""
Frontend routes for beamdrop
"""

import logging

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from .assets import AssetNotFound

logger = logging.getLogger(__name__)

# UI router; its catch-all route must be registered after the API routes
ui_router = APIRouter(tags=["ui"])


@ui_router.get("/{asset_path:path}")
async def static_asset(asset_path: str, request: Request):
    """Serve the bundled frontend, index.html at the root URL"""

    try:
        content, media_type = await request.app.state.assets.load(asset_path)
    except AssetNotFound:
        logger.warning(f"Static file not found: /{asset_path}")
        return JSONResponse({"error": "Not found"}, status_code=404)

    logger.debug(f"Serving static file: /{asset_path}")
    return Response(content, media_type=media_type)


def setup_ui_routes(app):
    """Setup UI routes"""
    app.include_router(ui_router)
    logger.debug("UI routes setup complete")
