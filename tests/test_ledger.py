from datetime import datetime

import pytest

from errors import DuplicateSubmission, NotFound, ValidationError
from ledger import get_vendor_rating_summary, submit_rating
from models import db, Rating, Vendor


def _rating_rows():
    return Rating.query.count()


@pytest.mark.parametrize("value", [0, 6, -1, 100, 2.5, "5", None, True])
def test_invalid_rating_value_is_rejected_without_writing(ctx, vendor_id, value):
    with pytest.raises(ValidationError) as exc:
        submit_rating(vendor_id, "1.2.3.4", value)
    assert "rating" in exc.value.errors
    assert _rating_rows() == 0


def test_comment_longer_than_500_chars_is_rejected(ctx, vendor_id):
    with pytest.raises(ValidationError) as exc:
        submit_rating(vendor_id, "1.2.3.4", 4, "x" * 501)
    assert "comment" in exc.value.errors
    assert _rating_rows() == 0


def test_comment_of_exactly_500_chars_is_kept(ctx, vendor_id):
    rating = submit_rating(vendor_id, "1.2.3.4", 4, "x" * 500)
    assert len(rating.comment) == 500


def test_blank_comment_is_stored_as_null(ctx, vendor_id):
    rating = submit_rating(vendor_id, "1.2.3.4", 3, "   ")
    assert rating.comment is None


def test_second_rating_same_day_same_ip_is_duplicate(ctx, vendor_id):
    submit_rating(vendor_id, "9.9.9.9", 5, now=datetime(2024, 3, 1, 9, 0))
    with pytest.raises(DuplicateSubmission):
        submit_rating(vendor_id, "9.9.9.9", 1, now=datetime(2024, 3, 1, 21, 30))
    assert _rating_rows() == 1


def test_other_ip_same_day_is_accepted(ctx, vendor_id):
    submit_rating(vendor_id, "9.9.9.9", 5, now=datetime(2024, 3, 1, 9, 0))
    submit_rating(vendor_id, "8.8.8.8", 4, now=datetime(2024, 3, 1, 9, 5))
    assert _rating_rows() == 2


def test_next_calendar_day_is_accepted_again(ctx, vendor_id):
    submit_rating(vendor_id, "9.9.9.9", 5, now=datetime(2024, 3, 1, 23, 59))
    # two minutes later, but past local midnight
    rating = submit_rating(vendor_id, "9.9.9.9", 4, now=datetime(2024, 3, 2, 0, 1))
    assert rating.rating_day.isoformat() == "2024-03-02"
    assert _rating_rows() == 2


def test_unique_day_constraint_catches_race(ctx, vendor_id, monkeypatch):
    submit_rating(vendor_id, "9.9.9.9", 5, now=datetime(2024, 3, 1, 9, 0))
    # simulate the check of a concurrent request running before the first insert
    monkeypatch.setattr("ledger.get_todays_rating_by_ip", lambda *a, **kw: None)
    with pytest.raises(DuplicateSubmission):
        submit_rating(vendor_id, "9.9.9.9", 3, now=datetime(2024, 3, 1, 9, 0, 1))
    assert _rating_rows() == 1


def test_missing_vendor_is_not_found(ctx):
    with pytest.raises(NotFound):
        submit_rating(999, "1.2.3.4", 5)


def test_inactive_vendor_is_not_found(ctx, vendor_id):
    vendor = db.session.get(Vendor, vendor_id)
    vendor.is_active = False
    db.session.commit()
    with pytest.raises(NotFound):
        submit_rating(vendor_id, "1.2.3.4", 5)
    assert _rating_rows() == 0


def test_summary_without_ratings_is_zero(ctx, vendor_id):
    assert get_vendor_rating_summary(vendor_id) == {"averageRating": 0, "ratingCount": 0}


def test_summary_is_mean_and_count(ctx, vendor_id):
    for ip, value in (("1.1.1.1", 5), ("2.2.2.2", 3), ("3.3.3.3", 4)):
        submit_rating(vendor_id, ip, value)
    summary = get_vendor_rating_summary(vendor_id)
    assert summary["averageRating"] == pytest.approx(4.0)
    assert summary["ratingCount"] == 3


def test_summary_reflects_rating_just_submitted(ctx, vendor_id):
    submit_rating(vendor_id, "1.1.1.1", 2)
    assert get_vendor_rating_summary(vendor_id)["ratingCount"] == 1
    submit_rating(vendor_id, "2.2.2.2", 5)
    summary = get_vendor_rating_summary(vendor_id)
    assert summary["ratingCount"] == 2
    assert summary["averageRating"] == pytest.approx(3.5)


def test_missing_vendor_wins_over_bad_input(ctx):
    with pytest.raises(NotFound):
        submit_rating(999, "1.2.3.4", 9)
