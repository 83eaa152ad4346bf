# --------------------------------------------------------------------------------
# Owner API: vendor config, uploads, QR code, analytics dashboard
# --------------------------------------------------------------------------------
import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user

from auth import owner_required
from errors import NotFound
from ledger import get_vendor_rating_summary
from tracker import get_vendor_analytics
from utils import client_page_url, generate_qr_data_url, save_uploaded_file
from vendor_system import get_vendor_by_user_id, update_vendor_qr_code, upsert_vendor

logger = logging.getLogger(__name__)

vendor_bp = Blueprint('vendor', __name__, url_prefix='/api')


def _own_vendor_or_404():
    vendor = get_vendor_by_user_id(current_user.id)
    if vendor is None:
        raise NotFound("Vendor configuration not found")
    return vendor


@vendor_bp.route('/vendor/config', methods=['GET'])
@owner_required
def vendor_config():
    vendor = get_vendor_by_user_id(current_user.id)
    return jsonify(vendor.to_dict() if vendor else None)


@vendor_bp.route('/vendor/config', methods=['POST'])
@owner_required
def vendor_config_save():
    """Create or update the owner's vendor profile"""
    vendor = upsert_vendor(current_user.id, request.get_json(silent=True))
    return jsonify(vendor.to_dict())


@vendor_bp.route('/upload/logo', methods=['POST'])
@owner_required
def upload_logo():
    return jsonify({"url": save_uploaded_file(request.files.get('logo'), 'logo')})


@vendor_bp.route('/upload/menu', methods=['POST'])
@owner_required
def upload_menu():
    return jsonify({"url": save_uploaded_file(request.files.get('menu'), 'menu')})


@vendor_bp.route('/vendor/generate-qr', methods=['POST'])
@owner_required
def vendor_generate_qr():
    """QR code pointing at the public client page; stored on the vendor"""
    vendor = _own_vendor_or_404()
    url = client_page_url(vendor.id)
    qr_code = generate_qr_data_url(url)
    update_vendor_qr_code(vendor, qr_code)
    logger.info("Generated QR code for vendor %s", vendor.id)
    return jsonify({"qrCode": qr_code, "url": url})


@vendor_bp.route('/vendor/analytics')
@owner_required
def vendor_analytics():
    """Per-kind interaction counts + average rating (1 decimal)"""
    vendor = _own_vendor_or_404()
    data = get_vendor_analytics(vendor.id)
    data["averageRating"] = round(get_vendor_rating_summary(vendor.id)["averageRating"], 1)
    return jsonify(data)
