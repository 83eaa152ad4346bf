# --------------------------------------------------------------------------------
# Feedback ledger: once-per-day ratings and the derived rating summary
# --------------------------------------------------------------------------------
import logging
from datetime import datetime, time

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import DuplicateSubmission, StorageError, ValidationError
from models import db, Rating
from vendor_system import get_active_vendor

logger = logging.getLogger(__name__)

RATING_MIN = 1
RATING_MAX = 5
COMMENT_MAX_LENGTH = 500


def validate_rating_input(rating, comment=None):
    """Return (rating, comment) cleaned, or raise ValidationError."""
    errors = {}
    # bool is an int subclass; True must not count as a 1-star rating
    if isinstance(rating, bool) or not isinstance(rating, int):
        errors["rating"] = "Rating must be an integer between 1 and 5"
    elif not RATING_MIN <= rating <= RATING_MAX:
        errors["rating"] = "Rating must be between 1 and 5"

    if comment is not None:
        if not isinstance(comment, str):
            errors["comment"] = "Comment must be text"
        elif len(comment) > COMMENT_MAX_LENGTH:
            errors["comment"] = "Comment must be at most %d characters" % COMMENT_MAX_LENGTH
        else:
            comment = comment.strip() or None

    if errors:
        raise ValidationError(errors, "Invalid rating data")
    return rating, comment


def get_todays_rating_by_ip(vendor_id, client_ip, now=None):
    """Rating from this IP since local midnight, or None."""
    now = now or datetime.now()
    day_start = datetime.combine(now.date(), time.min)
    return Rating.query.filter(
        Rating.vendor_id == vendor_id,
        Rating.client_ip == client_ip,
        Rating.created_at >= day_start,
    ).first()


def submit_rating(vendor_id, client_ip, rating, comment=None, now=None):
    """
    Store one rating for the vendor. Raises NotFound (missing/inactive vendor),
    ValidationError, DuplicateSubmission (same IP already rated today) or StorageError.
    Returns the new Rating.
    """
    vendor = get_active_vendor(vendor_id)
    rating, comment = validate_rating_input(rating, comment)
    now = now or datetime.now()

    try:
        if get_todays_rating_by_ip(vendor.id, client_ip, now) is not None:
            logger.info("Duplicate rating for vendor %s from %s", vendor.id, client_ip)
            raise DuplicateSubmission()

        new_rating = Rating(
            vendor_id=vendor.id,
            rating=rating,
            comment=comment,
            client_ip=client_ip,
            rating_day=now.date(),
            created_at=now,
        )
        db.session.add(new_rating)
        db.session.commit()
    except IntegrityError:
        # a parallel request from the same IP committed first
        db.session.rollback()
        logger.info("Duplicate rating for vendor %s from %s (unique constraint)", vendor.id, client_ip)
        raise DuplicateSubmission()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to store rating for vendor %s", vendor.id)
        raise StorageError("Failed to submit rating") from e
    return new_rating


def get_vendor_average_rating(vendor_id):
    avg = db.session.query(func.avg(Rating.rating)).filter(Rating.vendor_id == vendor_id).scalar()
    return float(avg) if avg is not None else 0


def get_vendor_rating_count(vendor_id):
    return db.session.query(func.count(Rating.id)).filter(Rating.vendor_id == vendor_id).scalar() or 0


def get_vendor_rating_summary(vendor_id):
    """Average (0 when unrated) and count, recomputed from the ratings table on every call."""
    try:
        return {
            "averageRating": get_vendor_average_rating(vendor_id),
            "ratingCount": get_vendor_rating_count(vendor_id),
        }
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Failed to read rating summary for vendor %s", vendor_id)
        raise StorageError("Failed to fetch rating summary") from e
