# --------------------------------------------------------------------------------
# Interaction tracker: append-only click/scan log and per-kind counts
# --------------------------------------------------------------------------------
import logging
from concurrent.futures import ThreadPoolExecutor

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from errors import StorageError, ValidationError
from models import db, AnalyticsEvent, ANALYTICS_EVENT_KEYS
from vendor_system import get_active_vendor

logger = logging.getLogger(__name__)

EVENT_TYPE_MAX_LENGTH = 50


def record_event(vendor_id, event_type, client_ip=None, user_agent=None):
    """
    Append one interaction event. event_type is stored verbatim; kinds outside
    ANALYTICS_EVENT_KEYS are kept but never reported.
    """
    if not isinstance(event_type, str) or not event_type.strip():
        raise ValidationError({"eventType": "eventType is required"}, "Invalid data")
    if len(event_type) > EVENT_TYPE_MAX_LENGTH:
        raise ValidationError({"eventType": "eventType is too long"}, "Invalid data")

    vendor = get_active_vendor(vendor_id)
    event = AnalyticsEvent(
        vendor_id=vendor.id,
        event_type=event_type,
        client_ip=client_ip[:45] if client_ip else None,
        user_agent=user_agent or None,
    )
    try:
        db.session.add(event)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to record %s event for vendor %s", event_type, vendor.id)
        raise StorageError("Failed to track event") from e
    return event


def _count_statement(vendor_id, event_type):
    return select(func.count(AnalyticsEvent.id)).where(
        AnalyticsEvent.vendor_id == vendor_id,
        AnalyticsEvent.event_type == event_type,
    )


def _count_on_own_connection(engine, vendor_id, event_type):
    with engine.connect() as conn:
        return conn.execute(_count_statement(vendor_id, event_type)).scalar() or 0


def get_vendor_analytics(vendor_id):
    """
    All-time count per known kind, e.g. {"qrScans": 3, "menuViews": 0, ...}.
    Each count is its own query; they do not share a snapshot.
    """
    event_types = list(ANALYTICS_EVENT_KEYS)
    try:
        if current_app.config.get("ANALYTICS_CONCURRENT_COUNTS", True):
            engine = db.engine
            with ThreadPoolExecutor(max_workers=len(event_types)) as pool:
                futures = [
                    pool.submit(_count_on_own_connection, engine, vendor_id, t)
                    for t in event_types
                ]
                counts = [f.result() for f in futures]
        else:
            counts = [
                db.session.execute(_count_statement(vendor_id, t)).scalar() or 0
                for t in event_types
            ]
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to count analytics for vendor %s", vendor_id)
        raise StorageError("Failed to fetch analytics") from e

    return {ANALYTICS_EVENT_KEYS[t]: c for t, c in zip(event_types, counts)}
