"""
beamdrop: share a local directory over the LAN
Built with FastAPI + Uvicorn
"""

__version__ = "0.1.0"
__author__ = "beamdrop"
__description__ = "Share a local directory with devices on the same network"
