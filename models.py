# --------------------------------------------------------------------------------
# Database models
# --------------------------------------------------------------------------------
from datetime import datetime
from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Interaction kinds reported on the dashboard: stored event_type -> response key
ANALYTICS_EVENT_KEYS = {
    "qr_scan": "qrScans",
    "whatsapp_click": "whatsappClicks",
    "instagram_click": "instagramClicks",
    "facebook_click": "facebookClicks",
    "tiktok_click": "tiktokClicks",
    "spotify_click": "spotifyClicks",
    "menu_view": "menuViews",
}


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model, UserMixin):
    """Owner account. id is the `sub` claim of the OIDC provider."""
    __tablename__ = "users"
    id = db.Column(db.String(255), primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=True)
    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    profile_image_url = db.Column(db.String(500), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "profileImageUrl": self.profile_image_url,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Vendor(db.Model):
    """Vendor profile (one per owner)"""
    __tablename__ = "vendors"
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(255), db.ForeignKey('users.id'), unique=True, nullable=False)
    business_name = db.Column(db.Text, nullable=False)
    business_description = db.Column(db.Text, nullable=True)
    logo_url = db.Column(db.Text, nullable=True)
    address = db.Column(db.Text, nullable=True)
    whatsapp_number = db.Column(db.String(50), nullable=True)
    instagram_handle = db.Column(db.String(100), nullable=True)
    facebook_handle = db.Column(db.String(100), nullable=True)
    tiktok_handle = db.Column(db.String(100), nullable=True)
    spotify_playlist_url = db.Column(db.Text, nullable=True)
    menu_file_url = db.Column(db.Text, nullable=True)
    menu_link = db.Column(db.Text, nullable=True)
    custom_message = db.Column(db.Text, nullable=True)
    qr_code_url = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    coupon_title = db.Column(db.Text, nullable=True)
    coupon_description = db.Column(db.Text, nullable=True)
    coupon_conditions = db.Column(db.Text, nullable=True)
    coupon_quantity = db.Column(db.Integer, nullable=True)
    coupon_icon = db.Column(db.String(50), nullable=True)
    gradient_from = db.Column(db.String(7), nullable=True)   # theme start color (#RRGGBB)
    gradient_to = db.Column(db.String(7), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "businessName": self.business_name,
            "businessDescription": self.business_description,
            "logoUrl": self.logo_url,
            "address": self.address,
            "whatsappNumber": self.whatsapp_number,
            "instagramHandle": self.instagram_handle,
            "facebookHandle": self.facebook_handle,
            "tiktokHandle": self.tiktok_handle,
            "spotifyPlaylistUrl": self.spotify_playlist_url,
            "menuFileUrl": self.menu_file_url,
            "menuLink": self.menu_link,
            "customMessage": self.custom_message,
            "qrCodeUrl": self.qr_code_url,
            "isActive": bool(self.is_active),
            "couponTitle": self.coupon_title,
            "couponDescription": self.coupon_description,
            "couponConditions": self.coupon_conditions,
            "couponQuantity": self.coupon_quantity,
            "couponIcon": self.coupon_icon,
            "gradientFrom": self.gradient_from,
            "gradientTo": self.gradient_to,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


class Rating(db.Model):
    """Client star rating (1~5). client_ip is kept for the once-per-day rule only."""
    __tablename__ = "ratings"
    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    comment = db.Column(db.String(500), nullable=True)
    client_ip = db.Column(db.String(45), nullable=False)
    rating_day = db.Column(db.Date, nullable=False)    # local calendar day of created_at
    created_at = db.Column(db.DateTime, default=datetime.now)
    __table_args__ = (
        db.UniqueConstraint('vendor_id', 'client_ip', 'rating_day', name='uq_rating_vendor_ip_day'),
        db.CheckConstraint('rating BETWEEN 1 AND 5', name='ck_rating_range'),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "vendorId": self.vendor_id,
            "rating": self.rating,
            "comment": self.comment,
            "createdAt": _iso(self.created_at),
        }


class AnalyticsEvent(db.Model):
    """Append-only client interaction log (scan, social clicks, menu views)"""
    __tablename__ = "analytics"
    id = db.Column(db.Integer, primary_key=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendors.id'), nullable=False)
    event_type = db.Column(db.String(50), nullable=False)
    client_ip = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.now)
    __table_args__ = (db.Index('ix_analytics_vendor_event', 'vendor_id', 'event_type'),)
