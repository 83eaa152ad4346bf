# --------------------------------------------------------------------------------
# Utilities (client IP, file uploads, QR codes)
# --------------------------------------------------------------------------------
import base64
import os
from datetime import datetime
from io import BytesIO

import qrcode
from flask import current_app, request
from PIL import Image, ImageOps
from werkzeug.utils import secure_filename

from config import (
    ALLOWED_UPLOAD_EXTENSIONS, QR_DARK_COLOR, QR_LIGHT_COLOR, QR_SIZE, QR_MARGIN, PUBLIC_DOMAINS,
)
from errors import ValidationError

# Longest edge after re-encoding, per upload kind
IMAGE_MAX_EDGE = {"logo": 512, "menu": 1600}
ALLOWED_MIMETYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "application/pdf"}


def get_client_ip():
    """Caller IP (ProxyFix has already applied X-Forwarded-For)."""
    return request.remote_addr or "unknown"


def get_user_agent():
    return request.headers.get("User-Agent", "")


def _upload_folder():
    folder = current_app.config["UPLOAD_FOLDER"]
    os.makedirs(folder, exist_ok=True)
    return folder


def _extension(filename):
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def save_uploaded_file(file, kind):
    """
    Store a logo/menu upload and return its public URL (/uploads/<name>).
    Images are EXIF-rotated, shrunk and re-encoded as WebP; PDFs are kept as-is.
    """
    if not file or not file.filename:
        raise ValidationError({kind: "No file uploaded"}, "No file uploaded")
    ext = _extension(secure_filename(file.filename))
    if ext not in ALLOWED_UPLOAD_EXTENSIONS or (file.mimetype or "").lower() not in ALLOWED_MIMETYPES:
        raise ValidationError(
            {kind: "Only images (JPEG, PNG, GIF) and PDF files are allowed"},
            "Only images (JPEG, PNG, GIF) and PDF files are allowed!",
        )

    stamp = datetime.now().strftime('%Y%m%d_%H%M%S_%f')
    folder = _upload_folder()

    if ext == "pdf":
        new_filename = f"{kind}_{stamp}.pdf"
        file.save(os.path.join(folder, new_filename))
        return f"/uploads/{new_filename}"

    new_filename = f"{kind}_{stamp}.webp"
    try:
        img = Image.open(file.stream)
        img = ImageOps.exif_transpose(img)
        edge = IMAGE_MAX_EDGE.get(kind, 1024)
        img.thumbnail((edge, edge), Image.Resampling.LANCZOS)
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        img.save(os.path.join(folder, new_filename), "WEBP", quality=85)
    except (OSError, Image.DecompressionBombError) as e:
        raise ValidationError({kind: "Unreadable image file"}, "Unreadable image file") from e
    return f"/uploads/{new_filename}"


def client_page_url(vendor_id):
    """Public page the QR code points to. First configured domain, else this request's host."""
    domain = PUBLIC_DOMAINS[0] if PUBLIC_DOMAINS else request.host
    return f"https://{domain}/client/{vendor_id}"


def generate_qr_data_url(data):
    """Render data as a square PNG QR code and return it as a data: URL."""
    qr = qrcode.QRCode(
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=QR_MARGIN,
    )
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color=QR_DARK_COLOR, back_color=QR_LIGHT_COLOR).get_image()
    img = img.resize((QR_SIZE, QR_SIZE), Image.Resampling.NEAREST)

    buf = BytesIO()
    img.save(buf, "PNG")
    return "data:image/png;base64," + base64.b64encode(buf.getvalue()).decode("ascii")
