# =======================================
# SECTION: IMPORTS AND BASE
# =======================================

from datetime import datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Text,
)

from db import Base


def _uuid() -> str:
    return str(uuid4())


# =======================================
# SECTION: ADMIN CONFIG MODEL
# =======================================

class AdminConfig(Base):
    __tablename__ = "admin_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(100), unique=True, nullable=False)
    value = Column(String(255), nullable=True)
    description = Column(String(255), nullable=True)

    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


# =======================================
# SECTION: USER MODELS
# =======================================

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)

    name = Column(String(255), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)

    # super | admin | moderator | user
    role = Column(String(20), nullable=False, default="user")

    banned = Column(Boolean, nullable=False, default=False)
    ban_reason = Column(String(255), nullable=True)
    ban_expires = Column(DateTime, nullable=True)

    # Preferences only apply to customers (role = "user")
    wants_notifications = Column(Boolean, nullable=False, default=True)
    wants_newsletter = Column(Boolean, nullable=False, default=True)
    preferences_updated_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


# =======================================
# SECTION: NOTIFICATIONS
# =======================================

class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    # info | success | warning | error
    type = Column(String(20), nullable=False, default="info")
    read = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


# =======================================
# SECTION: ANALYTICS EVENTS (append-only)
# =======================================

class SearchEvent(Base):
    __tablename__ = "search_events"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    origin = Column(String(10), nullable=False, index=True)
    destination = Column(String(10), nullable=False, index=True)
    # one-way | round-trip | multi-city
    trip_type = Column(String(20), nullable=False)
    travel_class = Column(String(30), nullable=True)
    adults = Column(Integer, nullable=False, default=1)
    children = Column(Integer, nullable=False, default=0)

    browser = Column(String(50), nullable=True)
    browser_version = Column(String(50), nullable=True)
    os = Column(String(50), nullable=True)
    os_version = Column(String(50), nullable=True)
    device_type = Column(String(20), nullable=True)
    user_agent = Column(Text, nullable=True)

    ip_masked = Column(String(64), nullable=True)
    country = Column(String(8), nullable=True)
    region = Column(String(100), nullable=True)

    session_id = Column(String(100), nullable=True, index=True)
    referrer = Column(Text, nullable=True)
    utm_source = Column(String(100), nullable=True)
    utm_medium = Column(String(100), nullable=True)
    utm_campaign = Column(String(100), nullable=True)


class ClickOutEvent(Base):
    __tablename__ = "clickout_events"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    origin = Column(String(10), nullable=False, index=True)
    destination = Column(String(10), nullable=False, index=True)
    trip_type = Column(String(20), nullable=False)
    partner = Column(String(100), nullable=True)

    user_agent = Column(Text, nullable=True)
    ip_masked = Column(String(64), nullable=True)

    session_id = Column(String(100), nullable=True, index=True)
    referrer = Column(Text, nullable=True)
    utm_source = Column(String(100), nullable=True)
    utm_medium = Column(String(100), nullable=True)
    utm_campaign = Column(String(100), nullable=True)

    price = Column(Float, nullable=True)
    currency = Column(String(3), nullable=True)
    deep_link = Column(Text, nullable=True)


# =======================================
# SECTION: CMS
# =======================================

class CmsPage(Base):
    __tablename__ = "cms_pages"

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    # Arbitrary JSON document, shape is owned by the frontend
    content = Column(JSON, nullable=True)
    # draft | published
    status = Column(String(20), nullable=False, default="published")
    updated_by = Column(String(36), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )


# =======================================
# SECTION: REFERENCE DATA
# =======================================

class Airport(Base):
    __tablename__ = "airports"

    id = Column(Integer, primary_key=True, index=True)
    iata_code = Column(String(3), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    city = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    country_code = Column(String(2), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)


# =======================================
# SECTION: EMAIL CAMPAIGNS
# =======================================

class EmailCampaign(Base):
    __tablename__ = "email_campaigns"

    id = Column(String(36), primary_key=True, default=_uuid)
    subject = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    sent_by_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    recipient_count = Column(Integer, nullable=False, default=0)
    # sending | sent | partial | failed
    status = Column(String(20), nullable=False, default="sent")

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class EmailCampaignRecipient(Base):
    __tablename__ = "email_campaign_recipients"

    id = Column(String(36), primary_key=True, default=_uuid)
    campaign_id = Column(String(36), ForeignKey("email_campaigns.id"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=True)
    email = Column(String(255), nullable=False)
    # sent | failed
    status = Column(String(20), nullable=False, default="sent")
    error = Column(Text, nullable=True)
