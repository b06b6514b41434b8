"""Pydantic request and response models for the HTTP API."""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Callable, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .pagination import Page
from .services.segment_filters import SegmentFilters

T = TypeVar("T")


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: str | None = None


class MessageResponse(BaseModel):
    message: str


class CountResponse(BaseModel):
    count: int


class PageMetaOut(BaseModel):
    total: int
    last_page: int
    current_page: int
    per_page: int
    prev: int | None = None
    next: int | None = None


class PageOut(BaseModel, Generic[T]):
    data: list[T]
    meta: PageMetaOut


def page_out(page: Page[Any], convert: Callable[[Any], Any]) -> dict:
    """Shape a service ``Page`` for a ``PageOut`` response."""
    return {"data": [convert(item) for item in page.data], "meta": asdict(page.meta)}


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------


class NotificationOut(ORMModel):
    id: str
    user_id: str | None
    customer_id: str | None
    sender_id: str | None
    template_id: str | None
    type: list[str]
    title: str
    message: str
    channel: str | None
    metadata: dict | None = Field(default=None, validation_alias=AliasChoices("metadata_", "metadata"))
    generated_by: str | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime


class CreateNotificationRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    user_id: str | None = None
    customer_id: str | None = None
    type: list[str] = Field(default_factory=lambda: ["in_app"])
    channel: str | None = None
    template_id: str | None = None
    metadata: dict | None = None
    generated_by: str | None = None


class MarkManyRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Notification templates
# ---------------------------------------------------------------------------


class TemplateOut(ORMModel):
    id: str
    customer_id: str | None
    title: str
    message: str
    type: list[str]
    channel: str | None
    metadata: dict | None = Field(default=None, validation_alias=AliasChoices("metadata_", "metadata"))
    created_by: str | None
    created_at: datetime
    updated_at: datetime


class CreateTemplateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    message: str = Field(min_length=1)
    customer_id: str | None = None
    type: list[str] = Field(default_factory=lambda: ["in_app"])
    channel: str | None = None
    metadata: dict | None = None


class UpdateTemplateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    message: str | None = Field(default=None, min_length=1)
    type: list[str] | None = None
    channel: str | None = None
    metadata: dict | None = None


class SendTemplateRequest(BaseModel):
    customer_id: str | None = None
    user_ids: list[str] | None = None


class SendTemplateResponse(BaseModel):
    template_id: str
    sent: int
    message: str


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


class CategoryOut(ORMModel):
    id: int
    name: str
    subcategory: str | None
    about: str | None
    icon: str | None


class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    subcategory: str | None = None
    about: str | None = None
    icon: str | None = None


class UpdateCategoryRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    subcategory: str | None = None
    about: str | None = None
    icon: str | None = None


class UserSummary(ORMModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None


class ArticleOut(ORMModel):
    id: int
    customer_id: str
    category_id: int | None
    title: str
    subcategory: str | None
    content: str
    status: str
    video_url: str | None
    views_number: int
    published_at: datetime | None
    created_at: datetime
    updated_at: datetime
    category: CategoryOut | None = None
    creator: UserSummary | None = None


ArticleStatus = Literal["draft", "published", "archived"]


class CreateArticleRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = ""
    category_id: int | None = None
    subcategory: str | None = None
    status: ArticleStatus = "draft"
    video_url: str | None = None


class UpdateArticleRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = None
    category_id: int | None = None
    subcategory: str | None = None
    status: ArticleStatus | None = None
    video_url: str | None = None


# ---------------------------------------------------------------------------
# Customer success
# ---------------------------------------------------------------------------


class CustomerSummary(ORMModel):
    id: str
    name: str
    domain: str | None


class AssignmentOut(ORMModel):
    id: str
    user_id: str
    customer_id: str
    created_at: datetime
    user: UserSummary | None = None
    customer: CustomerSummary | None = None


class CreateAssignmentRequest(BaseModel):
    user_id: str
    customer_id: str


class IsAssignedResponse(BaseModel):
    assigned: bool


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class SegmentOut(ORMModel):
    id: str
    customer_id: str
    user_id: str | None
    name: str
    description: str | None
    list_type: str
    subtype: str
    status: str
    is_static: bool
    filters: SegmentFilters
    error_message: str | None
    processed_at: datetime | None
    created_at: datetime
    updated_at: datetime
    company_count: int = 0


class CreateSegmentRequest(BaseModel):
    name: str = Field(max_length=255)
    description: str | None = None
    filters: SegmentFilters = Field(default_factory=SegmentFilters)


class UpdateSegmentRequest(BaseModel):
    name: str | None = Field(default=None, max_length=255)
    description: str | None = None
    filters: SegmentFilters | None = None


class SegmentStatusResponse(BaseModel):
    id: str
    status: str


class ProcessSegmentResponse(BaseModel):
    segment_id: str
    status: str
    companies_added: int
    total_available: int
    message: str


class CompanyOut(ORMModel):
    id: str
    domain: str
    name: str
    industry: str | None
    country: str | None
    city: str | None
    employee_count: int | None
    description: str | None
    linkedin_url: str | None


class IndustryMatchOut(BaseModel):
    name: str
    sector: str
    score: float
    matched_on: str


class CompanySizeOut(BaseModel):
    label: str
    min: int
    max: int | None


class SearchPreviewResponse(BaseModel):
    query: list[str]
    message: str


# ---------------------------------------------------------------------------
# Source and snap
# ---------------------------------------------------------------------------


class DeviceProfileOut(ORMModel):
    id: str
    programmatic_name: str
    display_name: str
    viewport_width: int
    viewport_height: int
    device_pixel_ratio: float
    user_agent: str | None
    is_mobile: bool
    description: str | None
    sort_order: int
    is_active: bool


class CreateDeviceProfileRequest(BaseModel):
    programmatic_name: str = Field(min_length=1, max_length=100, pattern=r"^[a-z0-9_\-]+$")
    display_name: str = Field(min_length=1, max_length=255)
    viewport_width: int = Field(default=1440, gt=0)
    viewport_height: int = Field(default=900, gt=0)
    device_pixel_ratio: float = Field(default=1.0, gt=0)
    user_agent: str | None = None
    is_mobile: bool = False
    description: str | None = None
    sort_order: int = 0
    is_active: bool = True


class UpdateDeviceProfileRequest(BaseModel):
    programmatic_name: str | None = Field(default=None, min_length=1, max_length=100, pattern=r"^[a-z0-9_\-]+$")
    display_name: str | None = Field(default=None, min_length=1, max_length=255)
    viewport_width: int | None = Field(default=None, gt=0)
    viewport_height: int | None = Field(default=None, gt=0)
    device_pixel_ratio: float | None = Field(default=None, gt=0)
    user_agent: str | None = None
    is_mobile: bool | None = None
    description: str | None = None
    sort_order: int | None = None
    is_active: bool | None = None


CaptureStatus = Literal["queued", "in_progress", "completed", "failed", "canceled"]


class CaptureRequestOut(ORMModel):
    id: str
    customer_id: str
    requested_by_user_id: str | None
    requested_url: str
    device_profile_id: str | None
    full_page: bool
    include_source: bool
    block_tracking: bool
    status: CaptureStatus
    queued_at: datetime
    started_at: datetime | None
    finished_at: datetime | None
    error_message: str | None


class CreateCaptureRequestBody(BaseModel):
    requested_url: str = Field(min_length=1)
    device_profile_id: str | None = None
    full_page: bool = False
    include_source: bool = False
    block_tracking: bool = False


class UpdateCaptureRequestBody(BaseModel):
    requested_url: str | None = Field(default=None, min_length=1)
    device_profile_id: str | None = None
    full_page: bool | None = None
    include_source: bool | None = None
    block_tracking: bool | None = None
    status: CaptureStatus | None = None
    error_message: str | None = None


class CaptureOut(ORMModel):
    id: str
    customer_id: str
    web_screenshot_capture_request_id: str | None
    options_device_profile_id: str | None
    page_title: str | None
    screenshot_storage_path: str
    screenshot_width: int | None
    screenshot_height: int | None
    screenshot_size_bytes: int | None
    html_size_bytes: int | None
    css_size_bytes: int | None
    capture_meta: dict | None
    captured_at: datetime


class CaptureDetailOut(CaptureOut):
    raw_html: str | None = None
    raw_css: str | None = None


class CreateCaptureBody(BaseModel):
    screenshot_storage_path: str = Field(min_length=1)
    web_screenshot_capture_request_id: str | None = None
    options_device_profile_id: str | None = None
    page_title: str | None = None
    screenshot_width: int | None = Field(default=None, gt=0)
    screenshot_height: int | None = Field(default=None, gt=0)
    screenshot_size_bytes: int | None = Field(default=None, ge=0)
    raw_html: str | None = None
    html_size_bytes: int | None = Field(default=None, ge=0)
    raw_css: str | None = None
    css_size_bytes: int | None = Field(default=None, ge=0)
    capture_meta: dict | None = None


class UpdateCaptureBody(BaseModel):
    page_title: str | None = None
    capture_meta: dict | None = None
    screenshot_storage_path: str | None = Field(default=None, min_length=1)


class ColorExtractionRequest(BaseModel):
    starting_url: str = Field(min_length=1)
    visual_style_guide_id: str | None = None


class PaletteColorOut(BaseModel):
    hex: str
    name: str
    usage_option: str
    sort_order: int


class PaletteOut(BaseModel):
    colors: list[PaletteColorOut]
    warnings: list[str]
    dropped: int


# ---------------------------------------------------------------------------
# LLM jobs
# ---------------------------------------------------------------------------


class LlmJobOut(ORMModel):
    id: str
    customer_id: str | None
    user_id: str | None
    provider: str | None
    feature_slug: str | None
    status: str
    retry_count: int
    result_ref: str | None
    error_message: str | None
    started_at: datetime | None
    completed_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime


class JobStatsOut(BaseModel):
    total: int
    by_status: dict[str, int]
    average_duration_seconds: float | None
    oldest_active_age_seconds: float | None


# ---------------------------------------------------------------------------
# System modules and roles
# ---------------------------------------------------------------------------


class ModulePermissionOut(BaseModel):
    name: str
    label: str
    order: int


class SystemModuleOut(BaseModel):
    name: str
    label: str
    enabled: bool
    permissions: list[ModulePermissionOut]


class PermissionOut(ORMModel):
    id: str
    name: str
    description: str | None


class RoleOut(ORMModel):
    id: str
    name: str
    description: str | None
    permissions: list[str]
    is_system_role: bool


class CreateRoleRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str] = Field(default_factory=list)


class UpdateRoleRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    permissions: list[str] | None = None


class RolePermissionsRequest(BaseModel):
    permissions: list[str]


# ---------------------------------------------------------------------------
# Customers and users
# ---------------------------------------------------------------------------


class CustomerOut(ORMModel):
    id: str
    name: str
    domain: str | None
    owner_user_id: str | None
    is_active: bool
    created_at: datetime


class CreateCustomerRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    owner_user_id: str | None = None
    customer_success_ids: list[str] = Field(default_factory=list)


class UpdateCustomerRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    owner_user_id: str | None = None
    is_active: bool | None = None
    customer_success_ids: list[str] | None = None


class UserOut(ORMModel):
    id: str
    email: str
    first_name: str | None
    last_name: str | None
    customer_id: str | None
    role_id: str | None
    role_name: str | None = None
    is_active: bool
    is_superadmin: bool
    created_at: datetime


class MeOut(UserOut):
    is_impersonating: bool = False
    impersonated_by: UserSummary | None = None


class CreateUserRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role_id: str | None = None
    customer_id: str | None = None
    auth_user_id: str | None = None


class UpdateUserRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    role_id: str | None = None
    is_active: bool | None = None


class UpdateProfileRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
