"""Pydantic schemas for request/response validation.

Request and response bodies use camelCase keys on the wire; snake_case field
names are accepted on input as well.
"""

import re
from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from security import check_password_strength, is_common_password

# Values allowed inside open JSON maps (product specifications, project results)
SpecValue = str | int | float | bool | list[str]

URL_PATTERN = re.compile(r"^https?://\S+$")
SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

# Integer columns are 32-bit on most databases
MAX_INT = 2_147_483_647
MAX_BEDS = 100_000
MAX_ORDER = 10_000
MAX_POINTS = 100_000
# Numeric(12, 2) columns hold at most this amount
MAX_AMOUNT = Decimal("9999999999.99")


class CamelModel(BaseModel):
    """Base schema that speaks camelCase JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
    )


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _optional_url(v: str | None) -> str | None:
    """Treat blank as missing and require http(s) URLs otherwise."""
    if v is None or v == "":
        return None
    if not URL_PATTERN.match(v):
        raise ValueError("Must be a valid http(s) URL")
    return v


def _validate_phone(v: str) -> str:
    if not re.match(r"^[\d\-\+\(\)\s]+$", v):
        raise ValueError("Invalid phone format")
    return v


def _validate_password(v: str) -> str:
    issues = check_password_strength(v)
    if issues:
        raise ValueError(issues[0])
    if is_common_password(v):
        raise ValueError("Password is too common")
    return v


class MessageResponse(CamelModel):
    """Generic message response."""

    message: str


# --- Authentication Schemas ---


class UserRole(str, Enum):
    """Back-office roles."""

    USER = "user"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class UserLogin(CamelModel):
    """Schema for admin login."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class UserCreate(CamelModel):
    """Schema for creating a back-office user."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.USER
    phone: str | None = Field(None, max_length=30)

    @field_validator("name", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        """Strip leading/trailing whitespace."""
        return _strip(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        """Ensure password has minimum complexity."""
        return _validate_password(v)


class UserUpdate(CamelModel):
    """Partial update of a back-office user."""

    email: EmailStr | None = None
    password: str | None = Field(None, min_length=8, max_length=128)
    name: str | None = Field(None, min_length=1, max_length=255)
    role: UserRole | None = None
    phone: str | None = Field(None, max_length=30)
    is_active: bool | None = None

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str | None) -> str | None:
        """Ensure a replacement password has minimum complexity."""
        return _validate_password(v) if v is not None else v


class UserResponse(CamelModel):
    """Schema for user data in responses."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    role: str
    phone: str | None = None
    is_active: bool
    created_at: datetime
    last_login: datetime | None = None


class Token(CamelModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# --- Quote Schemas ---


class QuoteStatus(str, Enum):
    """Quote lifecycle states. Any state may follow any other."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    SENT = "sent"


class DeliveryMethod(str, Enum):
    """Channel used to deliver a quote to the customer."""

    EMAIL = "email"
    WHATSAPP = "whatsapp"
    SMS = "sms"


class QuoteCreate(CamelModel):
    """Public quote request form."""

    customer_name: str = Field(..., min_length=2, max_length=255)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=10, max_length=30)
    project_type: str = Field(..., min_length=1, max_length=100)
    area_size: str = Field(..., min_length=1, max_length=100)
    crop_type: str | None = Field(None, max_length=100)
    location: str = Field(..., min_length=1, max_length=255)
    water_source: str = Field(..., min_length=1, max_length=100)
    distance_to_farm: str = Field(..., min_length=1, max_length=100)
    number_of_beds: int | None = Field(None, ge=0, le=MAX_BEDS)
    soil_type: str | None = Field(None, max_length=100)
    budget_range: str | None = Field(None, max_length=100)
    timeline: str | None = Field(None, max_length=100)
    requirements: str | None = Field(None, max_length=5000)
    delivery_method: DeliveryMethod = DeliveryMethod.EMAIL

    @field_validator(
        "customer_name",
        "customer_phone",
        "project_type",
        "area_size",
        "location",
        "water_source",
        "distance_to_farm",
        mode="before",
    )
    @classmethod
    def strip_whitespace(cls, v):
        """Strip leading/trailing whitespace so blank fields fail validation."""
        return _strip(v)

    @field_validator("customer_phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        """Ensure phone contains only valid characters."""
        return _validate_phone(v)


class QuoteItemInput(CamelModel):
    """Line item as edited in the back office."""

    id: str | None = Field(None, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=1000)
    quantity: Decimal = Field(Decimal("1"), gt=0, max_digits=10, decimal_places=3)
    unit: str = Field("pcs", min_length=1, max_length=20)
    unit_price: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    product_id: int | None = Field(None, ge=1, le=MAX_INT)


class QuoteItem(CamelModel):
    """Priced line item as stored on a quote."""

    id: str
    name: str
    description: str = ""
    quantity: float
    unit: str = "pcs"
    unit_price: float
    total: float
    product_id: int | None = None


class QuoteUpdate(CamelModel):
    """Admin edit of a quote. Only supplied fields are changed."""

    customer_name: str | None = Field(None, min_length=2, max_length=255)
    customer_email: EmailStr | None = None
    customer_phone: str | None = Field(None, min_length=10, max_length=30)
    project_type: str | None = Field(None, min_length=1, max_length=100)
    area_size: str | None = Field(None, min_length=1, max_length=100)
    crop_type: str | None = Field(None, max_length=100)
    location: str | None = Field(None, min_length=1, max_length=255)
    water_source: str | None = Field(None, min_length=1, max_length=100)
    distance_to_farm: str | None = Field(None, min_length=1, max_length=100)
    number_of_beds: int | None = Field(None, ge=0, le=MAX_BEDS)
    soil_type: str | None = Field(None, max_length=100)
    budget_range: str | None = Field(None, max_length=100)
    timeline: str | None = Field(None, max_length=100)
    requirements: str | None = Field(None, max_length=5000)
    status: QuoteStatus | None = None
    items: list[QuoteItemInput] | None = None
    total_amount: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    notes: str | None = Field(None, max_length=5000)
    assigned_to: int | None = Field(None, ge=1, le=MAX_INT)
    delivery_method: DeliveryMethod | None = None

    @field_validator("items")
    @classmethod
    def check_items_total(cls, v: list[QuoteItemInput] | None) -> list[QuoteItemInput] | None:
        """Reject line items whose subtotal would not fit the quote amount."""
        if v and sum(item.quantity * item.unit_price for item in v) > MAX_AMOUNT:
            raise ValueError("Quote subtotal exceeds the maximum amount")
        return v


class QuoteResponse(CamelModel):
    """Full quote record."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    customer_name: str
    customer_email: str
    customer_phone: str
    project_type: str
    area_size: str
    crop_type: str | None
    location: str
    water_source: str
    distance_to_farm: str
    number_of_beds: int | None
    soil_type: str | None
    budget_range: str | None
    timeline: str | None
    requirements: str | None
    status: str
    total_amount: float | None
    vat_amount: float | None
    final_total: float | None
    currency: str
    items: list[QuoteItem] = []
    notes: str | None
    assigned_to: int | None
    sent_at: datetime | None
    delivery_method: str
    created_at: datetime
    updated_at: datetime


class QuoteSubmissionResponse(QuoteResponse):
    """Response to a public quote request."""

    message: str
    notification_sent: bool


class QuoteSendResponse(CamelModel):
    """Result of sending a quote to the customer."""

    message: str
    status: str
    delivered: bool


# --- Product Schemas ---


class ProductCategory(str, Enum):
    """Catalog categories."""

    DRIP_IRRIGATION = "drip_irrigation"
    SPRINKLER = "sprinkler"
    FILTRATION = "filtration"
    CONTROL = "control"
    FERTIGATION = "fertigation"
    ACCESSORIES = "accessories"


class ProductCreate(CamelModel):
    """Schema for creating a catalog product."""

    name: str = Field(..., min_length=1, max_length=255)
    category: ProductCategory
    model: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    currency: str = Field("KSH", min_length=3, max_length=10)
    images: list[str] = []
    specifications: dict[str, SpecValue] = {}
    features: list[str] = []
    applications: list[str] = []
    in_stock: bool = True
    stock_quantity: int = Field(0, ge=0, le=MAX_INT)

    @field_validator("name", "model", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        """Strip leading/trailing whitespace."""
        return _strip(v)


class ProductUpdate(CamelModel):
    """Partial update of a catalog product."""

    name: str | None = Field(None, min_length=1, max_length=255)
    category: ProductCategory | None = None
    model: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, min_length=1)
    price: Decimal | None = Field(None, gt=0, max_digits=10, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=10)
    images: list[str] | None = None
    specifications: dict[str, SpecValue] | None = None
    features: list[str] | None = None
    applications: list[str] | None = None
    in_stock: bool | None = None
    stock_quantity: int | None = Field(None, ge=0, le=MAX_INT)


class ProductResponse(CamelModel):
    """Catalog product."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    category: str
    model: str
    description: str
    price: float
    currency: str
    images: list[str]
    specifications: dict[str, SpecValue]
    features: list[str]
    applications: list[str]
    in_stock: bool
    stock_quantity: int
    created_at: datetime
    updated_at: datetime


# --- Project Schemas ---


class ProjectStatus(str, Enum):
    """Portfolio project status."""

    PLANNING = "planning"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ON_HOLD = "on_hold"


class ProjectCreate(CamelModel):
    """Schema for creating a portfolio project."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1, max_length=255)
    project_type: str = Field(..., min_length=1, max_length=100)
    area_size: str = Field(..., min_length=1, max_length=100)
    value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    currency: str = Field("KSH", min_length=3, max_length=10)
    status: ProjectStatus = ProjectStatus.PLANNING
    start_date: datetime | None = None
    end_date: datetime | None = None
    images: list[str] = []
    results: dict[str, SpecValue] | None = None
    client_id: int | None = Field(None, ge=1, le=MAX_INT)


class ProjectUpdate(CamelModel):
    """Partial update of a portfolio project."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1)
    location: str | None = Field(None, min_length=1, max_length=255)
    project_type: str | None = Field(None, min_length=1, max_length=100)
    area_size: str | None = Field(None, min_length=1, max_length=100)
    value: Decimal | None = Field(None, ge=0, max_digits=12, decimal_places=2)
    currency: str | None = Field(None, min_length=3, max_length=10)
    status: ProjectStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    images: list[str] | None = None
    results: dict[str, SpecValue] | None = None
    client_id: int | None = Field(None, ge=1, le=MAX_INT)


class ProjectResponse(CamelModel):
    """Portfolio project."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    location: str
    project_type: str
    area_size: str
    value: float
    currency: str
    status: str
    start_date: datetime | None
    end_date: datetime | None
    images: list[str]
    results: dict[str, SpecValue] | None
    client_id: int | None
    created_at: datetime
    updated_at: datetime


# --- Blog Schemas ---


class BlogPostCreate(CamelModel):
    """Schema for creating a blog post."""

    title: str = Field(..., min_length=5, max_length=255)
    slug: str = Field(..., min_length=3, max_length=255, pattern=SLUG_PATTERN)
    content: str = Field(..., min_length=50)
    excerpt: str = Field(..., min_length=20)
    category: str = Field("General", min_length=1, max_length=100)
    tags: list[str] = []
    featured_image: str | None = Field(None, max_length=500)
    published: bool = False


class BlogPostUpdate(CamelModel):
    """Partial update of a blog post."""

    title: str | None = Field(None, min_length=5, max_length=255)
    slug: str | None = Field(None, min_length=3, max_length=255, pattern=SLUG_PATTERN)
    content: str | None = Field(None, min_length=50)
    excerpt: str | None = Field(None, min_length=20)
    category: str | None = Field(None, min_length=1, max_length=100)
    tags: list[str] | None = None
    featured_image: str | None = Field(None, max_length=500)
    published: bool | None = None


class BlogPostResponse(CamelModel):
    """Blog post."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    slug: str
    content: str
    excerpt: str
    category: str
    tags: list[str]
    featured_image: str | None
    published: bool
    author_id: int | None
    created_at: datetime
    updated_at: datetime


# --- Contact Schemas ---


class ContactStatus(str, Enum):
    """Contact message handling status."""

    NEW = "new"
    REPLIED = "replied"
    CLOSED = "closed"


class ContactCreate(CamelModel):
    """Public contact form."""

    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    phone: str | None = Field(None, min_length=10, max_length=30)
    subject: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=10, max_length=5000)

    @field_validator("first_name", "last_name", "subject", "message", mode="before")
    @classmethod
    def strip_whitespace(cls, v):
        """Strip leading/trailing whitespace."""
        return _strip(v)

    @field_validator("phone", mode="before")
    @classmethod
    def blank_phone(cls, v):
        """An empty phone field means no phone."""
        return None if v == "" else v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        """Ensure phone contains only valid characters."""
        return _validate_phone(v) if v is not None else v


class ContactUpdate(CamelModel):
    """Admin update of a contact message."""

    status: ContactStatus


class ContactResponse(CamelModel):
    """Contact message."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str | None
    subject: str
    message: str
    status: str
    created_at: datetime


# --- Team Schemas ---


class TeamMemberCreate(CamelModel):
    """Schema for adding a team member."""

    name: str = Field(..., min_length=1, max_length=255)
    position: str = Field(..., min_length=1, max_length=255)
    bio: str = Field(..., min_length=1)
    photo_url: str | None = Field(None, max_length=500)
    email: EmailStr | None = None
    linkedin: str | None = Field(None, max_length=500)
    order: int = Field(0, ge=0, le=MAX_ORDER)
    active: bool = True

    @field_validator("photo_url", "linkedin")
    @classmethod
    def check_urls(cls, v: str | None) -> str | None:
        return _optional_url(v)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        """An empty email field means no email."""
        return None if v == "" else v


class TeamMemberUpdate(CamelModel):
    """Partial update of a team member."""

    name: str | None = Field(None, min_length=1, max_length=255)
    position: str | None = Field(None, min_length=1, max_length=255)
    bio: str | None = Field(None, min_length=1)
    photo_url: str | None = Field(None, max_length=500)
    email: EmailStr | None = None
    linkedin: str | None = Field(None, max_length=500)
    order: int | None = Field(None, ge=0, le=MAX_ORDER)
    active: bool | None = None

    @field_validator("photo_url", "linkedin")
    @classmethod
    def check_urls(cls, v: str | None) -> str | None:
        return _optional_url(v)

    @field_validator("email", mode="before")
    @classmethod
    def blank_email(cls, v):
        """An empty email field clears the email."""
        return None if v == "" else v


class TeamMemberResponse(CamelModel):
    """Team member."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    position: str
    bio: str
    photo_url: str | None
    email: str | None
    linkedin: str | None
    order: int
    active: bool
    created_at: datetime
    updated_at: datetime


# --- Success Story Schemas ---


class SuccessStoryCreate(CamelModel):
    """Schema for creating a success story."""

    title: str = Field(..., min_length=1, max_length=255)
    client_name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field("Agriculture", min_length=1, max_length=100)
    location: str = Field(..., min_length=1, max_length=255)
    area_size: str = Field(..., min_length=1, max_length=100)
    water_savings: str | None = Field(None, max_length=100)
    yield_increase: str | None = Field(None, max_length=100)
    photo_url: str | None = Field(None, max_length=500)
    completed_date: str = Field(..., min_length=1, max_length=50)
    featured: bool = False
    active: bool = True

    @field_validator("photo_url")
    @classmethod
    def check_photo_url(cls, v: str | None) -> str | None:
        return _optional_url(v)


class SuccessStoryUpdate(CamelModel):
    """Partial update of a success story."""

    title: str | None = Field(None, min_length=1, max_length=255)
    client_name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, min_length=1)
    category: str | None = Field(None, min_length=1, max_length=100)
    location: str | None = Field(None, min_length=1, max_length=255)
    area_size: str | None = Field(None, min_length=1, max_length=100)
    water_savings: str | None = Field(None, max_length=100)
    yield_increase: str | None = Field(None, max_length=100)
    photo_url: str | None = Field(None, max_length=500)
    completed_date: str | None = Field(None, min_length=1, max_length=50)
    featured: bool | None = None
    active: bool | None = None

    @field_validator("photo_url")
    @classmethod
    def check_photo_url(cls, v: str | None) -> str | None:
        return _optional_url(v)


class SuccessStoryResponse(CamelModel):
    """Success story."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    client_name: str
    description: str
    category: str
    location: str
    area_size: str
    water_savings: str | None
    yield_increase: str | None
    photo_url: str | None
    completed_date: str
    featured: bool
    active: bool
    created_at: datetime
    updated_at: datetime


# --- Analytics & Gamification Schemas ---


class PageViewCreate(CamelModel):
    """Client-reported page view."""

    page: str = Field(..., min_length=1, max_length=500)
    session_id: str = Field(..., min_length=1, max_length=100)
    referrer: str | None = Field(None, max_length=500)


class AnalyticsResponse(CamelModel):
    """Back-office dashboard counters."""

    total_products: int
    total_quotes: int
    total_projects: int
    total_contacts: int
    quotes_by_status: dict[str, int]
    unique_visitors_today: int
    visitor_growth: int


class AchievementCategory(str, Enum):
    """Metric an achievement milestone is measured against."""

    QUOTES = "quotes"
    PROJECTS = "projects"
    ENGAGEMENT = "engagement"


class AchievementRarity(str, Enum):
    """Badge rarity."""

    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AchievementCreate(CamelModel):
    """Schema for defining an achievement."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    icon: str = Field(..., min_length=1, max_length=100)
    category: AchievementCategory
    milestone: int = Field(..., ge=1, le=MAX_INT)
    points: int = Field(10, ge=0, le=MAX_POINTS)
    color: str = Field("blue", min_length=1, max_length=20)
    rarity: AchievementRarity = AchievementRarity.COMMON
    active: bool = True


class AchievementResponse(CamelModel):
    """Achievement definition."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    icon: str
    category: str
    milestone: int
    points: int
    color: str
    rarity: str
    active: bool


class GamificationStatsResponse(CamelModel):
    """Points and level for one user."""

    model_config = ConfigDict(from_attributes=True)

    total_points: int
    level: int
    quotes_created: int
    projects_completed: int
    achievement_count: int
    last_activity: datetime | None


class AchievementProgress(AchievementResponse):
    """Achievement with the current user's unlock state."""

    unlocked: bool


class GamificationOverview(CamelModel):
    """Achievement dashboard for the current admin."""

    total_achievements: int
    unlocked_achievements: int
    gamification_stats: GamificationStatsResponse
    newly_unlocked: list[AchievementResponse]
    achievements_by_category: dict[str, list[AchievementProgress]]
