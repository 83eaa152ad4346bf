# --------------------------------------------------------------------------------
# Vendor profile: lookup, validation and owner upsert
# --------------------------------------------------------------------------------
import logging
import re
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import NotFound, StorageError, ValidationError
from models import db, Vendor

logger = logging.getLogger(__name__)

# request key -> column
TEXT_FIELDS = {
    "businessDescription": "business_description",
    "address": "address",
    "whatsappNumber": "whatsapp_number",
    "instagramHandle": "instagram_handle",
    "facebookHandle": "facebook_handle",
    "tiktokHandle": "tiktok_handle",
    "customMessage": "custom_message",
    "couponTitle": "coupon_title",
    "couponDescription": "coupon_description",
    "couponConditions": "coupon_conditions",
    "couponIcon": "coupon_icon",
}
URL_FIELDS = {
    "logoUrl": "logo_url",
    "spotifyPlaylistUrl": "spotify_playlist_url",
    "menuFileUrl": "menu_file_url",
    "menuLink": "menu_link",
}
COLOR_FIELDS = {
    "gradientFrom": "gradient_from",
    "gradientTo": "gradient_to",
}
BUSINESS_NAME_MAX_LENGTH = 200
# serial primary key range
MAX_VENDOR_ID = 2 ** 31 - 1

_URL_RE = re.compile(r"^https?://[^\s/$.?#][^\s]*$", re.IGNORECASE)
_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def get_vendor(vendor_id):
    try:
        return db.session.get(Vendor, vendor_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to load vendor %s", vendor_id)
        raise StorageError("Failed to fetch vendor data") from e


def get_active_vendor(vendor_id):
    """Vendor by id, raising NotFound when it is missing or switched off."""
    if isinstance(vendor_id, bool) or not isinstance(vendor_id, int):
        raise NotFound()
    if not 0 < vendor_id <= MAX_VENDOR_ID:
        raise NotFound()
    vendor = get_vendor(vendor_id)
    if vendor is None or not vendor.is_active:
        raise NotFound()
    return vendor


def get_vendor_by_user_id(user_id):
    try:
        return Vendor.query.filter_by(user_id=user_id).first()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to load vendor of user %s", user_id)
        raise StorageError("Failed to fetch vendor configuration") from e


def _is_valid_url(value):
    # uploaded files come back as /uploads/<name>
    return value.startswith("/uploads/") or bool(_URL_RE.match(value))


def validate_vendor_payload(data):
    """
    Check the owner's config form and return {column: value}.
    Blank strings become None; unknown keys are ignored.
    """
    if not isinstance(data, dict):
        raise ValidationError({"_": "Expected a JSON object"})
    errors = {}
    cleaned = {}

    name = data.get("businessName")
    if not isinstance(name, str) or not name.strip():
        errors["businessName"] = "Business name is required"
    elif len(name.strip()) > BUSINESS_NAME_MAX_LENGTH:
        errors["businessName"] = "Business name is too long"
    else:
        cleaned["business_name"] = name.strip()

    for key, column in TEXT_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if value is None:
            cleaned[column] = None
        elif not isinstance(value, str):
            errors[key] = "Must be text"
        else:
            cleaned[column] = value.strip() or None

    for key, column in URL_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if value is None or (isinstance(value, str) and not value.strip()):
            cleaned[column] = None
        elif not isinstance(value, str) or not _is_valid_url(value.strip()):
            errors[key] = "Invalid URL"
        else:
            cleaned[column] = value.strip()

    for key, column in COLOR_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if value is None or value == "":
            cleaned[column] = None
        elif not isinstance(value, str) or not _COLOR_RE.match(value.strip()):
            errors[key] = "Invalid color, expected #RRGGBB"
        else:
            cleaned[column] = value.strip().lower()

    if "couponQuantity" in data:
        qty = data["couponQuantity"]
        if qty is None or qty == "":
            cleaned["coupon_quantity"] = None
        elif isinstance(qty, bool) or not isinstance(qty, int) or qty < 0:
            errors["couponQuantity"] = "Must be a non-negative integer"
        else:
            cleaned["coupon_quantity"] = qty

    if "isActive" in data:
        if not isinstance(data["isActive"], bool):
            errors["isActive"] = "Must be true or false"
        else:
            cleaned["is_active"] = data["isActive"]

    if errors:
        raise ValidationError(errors)
    return cleaned


def upsert_vendor(user_id, data):
    """Create the owner's vendor or update it in place. data is the raw request body."""
    values = validate_vendor_payload(data)
    try:
        vendor = get_vendor_by_user_id(user_id)
        if vendor is None:
            vendor = Vendor(user_id=user_id, **values)
            db.session.add(vendor)
            try:
                db.session.commit()
                logger.info("Created vendor %s for user %s", vendor.id, user_id)
                return vendor
            except IntegrityError:
                # another request created the row first (user_id is unique)
                db.session.rollback()
                vendor = Vendor.query.filter_by(user_id=user_id).first()
                if vendor is None:
                    raise
        for column, value in values.items():
            setattr(vendor, column, value)
        vendor.updated_at = datetime.now()
        db.session.commit()
        return vendor
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to save vendor config for user %s", user_id)
        raise StorageError("Failed to save vendor configuration") from e


def update_vendor_qr_code(vendor, qr_code_url):
    try:
        vendor.qr_code_url = qr_code_url
        vendor.updated_at = datetime.now()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to store QR code for vendor %s", vendor.id)
        raise StorageError("Failed to generate QR code") from e
