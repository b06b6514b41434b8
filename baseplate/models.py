"""Core SQLAlchemy models (2.x style) for the workspace schema.

Keys are UUID strings and list-valued columns are JSON so the same metadata
runs against PostgreSQL in production and SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, the representation every datetime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


# ---------------------------------------------------------------------------
# Tenancy and identity
# ---------------------------------------------------------------------------


class Customer(TimestampMixin, Base):
    """Tenant organisation."""
    __tablename__ = "customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    domain: Mapped[str | None] = mapped_column(String(255))
    owner_user_id: Mapped[str | None] = mapped_column(String(36))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)


class Role(Base):
    """Named role carrying a list of permission names."""
    __tablename__ = "roles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)
    permissions: Mapped[list] = mapped_column(JSON, default=list, nullable=False)
    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Permission(Base):
    """Catalog of grantable permission names."""
    __tablename__ = "permissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text)


class User(TimestampMixin, Base):
    """Application user, linked to an identity provider subject."""
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    auth_user_id: Mapped[str | None] = mapped_column(String(36), unique=True)
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    first_name: Mapped[str | None] = mapped_column(String(100))
    last_name: Mapped[str | None] = mapped_column(String(100))
    customer_id: Mapped[str | None] = mapped_column(ForeignKey("customers.id"), index=True)
    role_id: Mapped[str | None] = mapped_column(ForeignKey("roles.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_superadmin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    role: Mapped[Role | None] = relationship("Role", lazy="joined")

    @property
    def full_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


class CustomerSuccessOwnedCustomer(Base):
    """Assignment of a customer success rep to a customer."""
    __tablename__ = "customer_success_owned_customers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    user: Mapped[User] = relationship("User")
    customer: Mapped[Customer] = relationship("Customer")

    __table_args__ = (
        UniqueConstraint("user_id", "customer_id", name="uq_cs_owned_customer"),
        Index("ix_cs_owned_customer_customer", "customer_id"),
    )


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class Notification(TimestampMixin, Base):
    """Per-user notification. ``read_at`` is null while unread."""
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    customer_id: Mapped[str | None] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), index=True)
    sender_id: Mapped[str | None] = mapped_column(String(36))
    template_id: Mapped[str | None] = mapped_column(ForeignKey("notification_templates.id", ondelete="SET NULL"))
    type: Mapped[list] = mapped_column(JSON, default=lambda: ["in_app"], nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    channel: Mapped[str | None] = mapped_column(String(100), index=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)
    generated_by: Mapped[str | None] = mapped_column(String(255))
    read_at: Mapped[datetime | None] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class NotificationTemplate(TimestampMixin, Base):
    """Reusable notification body sent to a customer's users."""
    __tablename__ = "notification_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str | None] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[list] = mapped_column(JSON, default=lambda: ["in_app"], nullable=False)
    channel: Mapped[str | None] = mapped_column(String(100))
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)
    created_by: Mapped[str | None] = mapped_column(String(36))
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    __table_args__ = (
        UniqueConstraint("title", name="uq_notification_templates_title"),
    )


# ---------------------------------------------------------------------------
# Documentation
# ---------------------------------------------------------------------------


class ArticleCategory(TimestampMixin, Base):
    __tablename__ = "article_categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(255))
    about: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(100))
    created_by: Mapped[str | None] = mapped_column(String(36))


class Article(TimestampMixin, Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id: Mapped[int | None] = mapped_column(ForeignKey("article_categories.id", ondelete="SET NULL"))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    subcategory: Mapped[str | None] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    video_url: Mapped[str | None] = mapped_column(Text)
    views_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    published_at: Mapped[datetime | None] = mapped_column(DateTime)

    category: Mapped[ArticleCategory | None] = relationship("ArticleCategory", lazy="joined")
    creator: Mapped[User | None] = relationship("User", lazy="joined")

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published', 'archived')", name="ck_articles_status"),
    )


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class List(TimestampMixin, Base):
    """Company list. Segments are lists with ``list_type='segment'``."""
    __tablename__ = "lists"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    list_type: Mapped[str] = mapped_column(String(20), nullable=False, default="segment")
    subtype: Mapped[str] = mapped_column(String(20), nullable=False, default="company")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="new")
    is_static: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    filters: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    error_message: Mapped[str | None] = mapped_column(Text)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    __table_args__ = (
        CheckConstraint("list_type IN ('segment', 'territory', 'list')", name="ck_lists_list_type"),
        CheckConstraint("subtype IN ('company', 'people')", name="ck_lists_subtype"),
        CheckConstraint("status IN ('new', 'processing', 'completed', 'failed')", name="ck_lists_status"),
        Index("ix_lists_customer_updated", "customer_id", "updated_at"),
    )


class Company(TimestampMixin, Base):
    __tablename__ = "companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    domain: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str | None] = mapped_column(String(255))
    country: Mapped[str | None] = mapped_column(String(100))
    city: Mapped[str | None] = mapped_column(String(100))
    employee_count: Mapped[int | None] = mapped_column(Integer)
    description: Mapped[str | None] = mapped_column(Text)
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    external_id: Mapped[str | None] = mapped_column(String(255))
    raw: Mapped[dict | None] = mapped_column(JSON)


class ListCompany(Base):
    __tablename__ = "list_companies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    list_id: Mapped[str] = mapped_column(ForeignKey("lists.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id: Mapped[str] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    company: Mapped[Company] = relationship("Company", lazy="joined")

    __table_args__ = (
        UniqueConstraint("list_id", "company_id", name="uq_list_companies"),
    )


# ---------------------------------------------------------------------------
# Source and snap (web captures)
# ---------------------------------------------------------------------------


class DeviceProfile(TimestampMixin, Base):
    """Viewport option used when rendering a capture."""
    __tablename__ = "options_device_profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    programmatic_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    viewport_width: Mapped[int] = mapped_column(Integer, nullable=False, default=1440)
    viewport_height: Mapped[int] = mapped_column(Integer, nullable=False, default=900)
    device_pixel_ratio: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    user_agent: Mapped[str | None] = mapped_column(Text)
    is_mobile: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    description: Mapped[str | None] = mapped_column(Text)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("viewport_width > 0", name="ck_device_profiles_width"),
        CheckConstraint("viewport_height > 0", name="ck_device_profiles_height"),
        CheckConstraint("device_pixel_ratio > 0", name="ck_device_profiles_dpr"),
    )


class CaptureRequest(Base):
    """Queued request to render a web page."""
    __tablename__ = "web_screenshot_capture_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    requested_by_user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    requested_url: Mapped[str] = mapped_column(Text, nullable=False)
    device_profile_id: Mapped[str | None] = mapped_column(
        ForeignKey("options_device_profiles.id", ondelete="SET NULL"),
    )
    full_page: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    include_source: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    block_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued")
    queued_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime)
    error_message: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (
        CheckConstraint("length(requested_url) > 0", name="ck_capture_requests_url"),
        CheckConstraint(
            "status IN ('queued', 'in_progress', 'completed', 'failed', 'canceled')",
            name="ck_capture_requests_status",
        ),
        Index("ix_capture_requests_customer_queued", "customer_id", "queued_at"),
    )


class Capture(Base):
    """Rendered page: screenshot location, dimensions and optional source."""
    __tablename__ = "web_screenshot_captures"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    web_screenshot_capture_request_id: Mapped[str | None] = mapped_column(
        ForeignKey("web_screenshot_capture_requests.id", ondelete="CASCADE"),
        index=True,
    )
    options_device_profile_id: Mapped[str | None] = mapped_column(
        ForeignKey("options_device_profiles.id", ondelete="SET NULL"),
    )
    page_title: Mapped[str | None] = mapped_column(Text)
    screenshot_storage_path: Mapped[str] = mapped_column(Text, nullable=False)
    screenshot_width: Mapped[int | None] = mapped_column(Integer)
    screenshot_height: Mapped[int | None] = mapped_column(Integer)
    screenshot_size_bytes: Mapped[int | None] = mapped_column(Integer)
    raw_html: Mapped[str | None] = mapped_column(Text)
    html_size_bytes: Mapped[int | None] = mapped_column(Integer)
    raw_css: Mapped[str | None] = mapped_column(Text)
    css_size_bytes: Mapped[int | None] = mapped_column(Integer)
    capture_meta: Mapped[dict | None] = mapped_column(JSON)
    captured_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)


# ---------------------------------------------------------------------------
# LLM jobs
# ---------------------------------------------------------------------------


class LlmJob(TimestampMixin, Base):
    __tablename__ = "llm_jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_id: Mapped[str | None] = mapped_column(ForeignKey("customers.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"))
    provider: Mapped[str | None] = mapped_column(String(50))
    feature_slug: Mapped[str | None] = mapped_column(String(100), index=True)
    prompt: Mapped[str | None] = mapped_column(Text)
    system_prompt: Mapped[str | None] = mapped_column(Text)
    input: Mapped[dict | None] = mapped_column(JSON)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="queued", index=True)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    result_ref: Mapped[str | None] = mapped_column(Text)
    error_message: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime | None] = mapped_column(DateTime)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime)

    __table_args__ = (
        CheckConstraint(
            "status IN ('queued', 'running', 'waiting_llm', 'retrying', 'completed', 'error', 'exhausted', 'cancelled')",
            name="ck_llm_jobs_status",
        ),
    )
