# --------------------------------------------------------------------------------
# Public client API (no login): vendor page data, ratings, click tracking
# --------------------------------------------------------------------------------
import logging

from flask import Blueprint, jsonify, request

from errors import LedgerError, NotFound, ValidationError
from ledger import get_vendor_rating_summary, submit_rating
from tracker import record_event
from utils import get_client_ip, get_user_agent
from vendor_system import MAX_VENDOR_ID, get_active_vendor

logger = logging.getLogger(__name__)

client_bp = Blueprint('client', __name__, url_prefix='/api/client')


def _parse_vendor_id(raw):
    """Malformed ids answer the same 404 as missing vendors."""
    try:
        vendor_id = int(raw)
    except (TypeError, ValueError):
        raise NotFound()
    if not 0 < vendor_id <= MAX_VENDOR_ID:
        raise NotFound()
    return vendor_id


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError({"_": "Expected a JSON object"})
    return data


@client_bp.route('/<vendor_id>')
def client_vendor_page(vendor_id):
    """Vendor public profile + rating summary. Counts as a QR scan."""
    vendor = get_active_vendor(_parse_vendor_id(vendor_id))

    # best effort: a failed scan record must not break the page
    try:
        record_event(vendor.id, 'qr_scan', get_client_ip(), get_user_agent())
    except LedgerError:
        logger.warning("Could not record scan for vendor %s", vendor.id, exc_info=True)

    data = vendor.to_dict()
    data.update(get_vendor_rating_summary(vendor.id))
    return jsonify(data)


@client_bp.route('/<vendor_id>/rate', methods=['POST'])
def client_rate(vendor_id):
    """Submit a 1~5 rating (once per IP per day)"""
    vendor_id = _parse_vendor_id(vendor_id)
    data = _json_body()
    rating = submit_rating(vendor_id, get_client_ip(), data.get('rating'), data.get('comment'))
    return jsonify(rating.to_dict())


@client_bp.route('/<vendor_id>/track', methods=['POST'])
def client_track(vendor_id):
    """Record a click/view event ({eventType})"""
    vendor_id = _parse_vendor_id(vendor_id)
    data = _json_body()
    record_event(vendor_id, data.get('eventType'), get_client_ip(), get_user_agent())
    return jsonify({"success": True})
