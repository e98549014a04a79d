"""
Terminal QR code for the share URL
"""

import sys
from typing import Optional, TextIO

import qrcode


def build_qr(url: str) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        border=1,
    )
    qr.add_data(url)
    qr.make(fit=True)
    return qr


def show_qr_code(url: str, out: Optional[TextIO] = None):
    """Print a scannable QR code for url using block characters"""
    out = out or sys.stdout
    build_qr(url).print_ascii(out=out, invert=True)
    out.flush()
