from __future__ import annotations

import json
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Annotated, Dict, Generic, List, Literal, Optional, TypeVar

from pydantic import AfterValidator, BaseModel, EmailStr, Field, computed_field, field_validator, model_validator

from eventhub.config import Config

T = TypeVar("T")

PHONE_RE = re.compile(r"^[+]?[\d\s\-()]{10,}$")


class Role(str, Enum):
    admin = "admin"
    manager = "manager"
    user = "user"


class EventStatus(str, Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    completed = "completed"


class RegistrationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    waitlisted = "waitlisted"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"
    failed = "failed"


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    paypal = "paypal"
    bank_transfer = "bank_transfer"
    crypto = "crypto"


class TicketType(str, Enum):
    standard = "standard"
    vip = "vip"
    early_bird = "early_bird"


class SortDirection(str, Enum):
    asc = "asc"
    desc = "desc"


# Statuses that hold seats against an event's capacity.
SEAT_HOLDING_STATUSES = (RegistrationStatus.pending.value, RegistrationStatus.confirmed.value)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not PHONE_RE.match(value):
        raise ValueError("phone must be a valid phone number")
    return value


def _check_seats(value: int) -> int:
    if value < 1 or value > Config.MAX_SEATS_PER_BOOKING:
        raise ValueError(f"seats must be between 1 and {Config.MAX_SEATS_PER_BOOKING}")
    return value


Phone = Annotated[Optional[str], AfterValidator(_check_phone)]
Seats = Annotated[int, AfterValidator(_check_seats)]


# Users


class UserPreferences(BaseModel):
    email_notifications: bool = True
    push_notifications: bool = True
    sms_notifications: bool = False
    marketing_emails: bool = False
    theme: Literal["light", "dark", "auto"] = "light"
    language: str = "en"
    timezone: str = "UTC"
    date_format: str = "MM/DD/YYYY"
    time_format: Literal["12h", "24h"] = "12h"
    currency: str = "USD"


class PreferencesUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    sms_notifications: Optional[bool] = None
    marketing_emails: Optional[bool] = None
    theme: Optional[Literal["light", "dark", "auto"]] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    date_format: Optional[str] = None
    time_format: Optional[Literal["12h", "24h"]] = None
    currency: Optional[str] = None


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: Phone = None


class UserCreate(SignupRequest):
    role: Role = Role.user
    company_id: Optional[int] = None
    department: Optional[str] = None
    job_title: Optional[str] = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=72)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    phone: Phone = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    company_id: Optional[int] = None
    role: Optional[Role] = None
    is_active: Optional[bool] = None


class UserOut(BaseModel):
    id: int
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None
    role: Role
    company_id: Optional[int] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    preferences: UserPreferences = Field(default_factory=UserPreferences)
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("preferences", mode="before")
    @classmethod
    def _parse_preferences(cls, value):
        if value is None or value == "":
            return {}
        if isinstance(value, str):
            return json.loads(value)
        return value

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


# Companies


class CompanyCreate(BaseModel):
    name: str = Field(min_length=2, max_length=200)
    industry: Optional[str] = None
    website: Optional[str] = None


class CompanyUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=200)
    industry: Optional[str] = None
    website: Optional[str] = None


class CompanyOut(BaseModel):
    id: int
    name: str
    industry: Optional[str] = None
    website: Optional[str] = None
    created_at: datetime


# Events


class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=200)
    description: Optional[str] = None
    category: str = Field(min_length=2, max_length=50)
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    max_attendees: int = Field(gt=0)
    price_cents: int = Field(ge=0)
    currency: str = Config.CURRENCY
    is_public: bool = True
    requires_approval: bool = False
    tags: List[str] = Field(default_factory=list)
    company_id: Optional[int] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_tz(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: List[str]) -> List[str]:
        cleaned = []
        for tag in value:
            tag = tag.strip().lower()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return cleaned

    @model_validator(mode="after")
    def _check_end_after_start(self):
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    max_attendees: Optional[int] = None
    price_cents: Optional[int] = None
    currency: Optional[str] = None
    is_public: Optional[bool] = None
    requires_approval: Optional[bool] = None
    tags: Optional[List[str]] = None
    company_id: Optional[int] = None


class EventOut(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    category: str
    location: Optional[str] = None
    start_date: datetime
    end_date: datetime
    max_attendees: int
    price_cents: int
    currency: str = "USD"
    status: EventStatus
    is_public: bool = True
    requires_approval: bool = False
    tags: List[str] = Field(default_factory=list)
    created_by: int
    company_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    current_attendees: int = 0

    @field_validator("current_attendees", mode="before")
    @classmethod
    def _coerce_none_ints(cls, value):
        return 0 if value is None else value

    @field_validator("tags", mode="before")
    @classmethod
    def _split_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [tag for tag in value.split(",") if tag]
        return value

    @computed_field
    @property
    def available_seats(self) -> int:
        return max(self.max_attendees - self.current_attendees, 0)


# Registrations


class PriceQuote(BaseModel):
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    total_cents: int
    currency: str = "USD"
    ticket_type: TicketType = TicketType.standard
    coupon_code: Optional[str] = None
    coupon_applied: bool = False


class PriceQuoteRequest(BaseModel):
    event_id: int
    seats: Seats = 1
    ticket_type: TicketType = TicketType.standard
    coupon_code: Optional[str] = None


class RegistrationCreate(BaseModel):
    event_id: int
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone: str
    company: Optional[str] = None
    job_title: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    special_requirements: Optional[str] = Field(default=None, max_length=500)
    seats: Seats = 1
    ticket_type: TicketType = TicketType.standard
    coupon_code: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    @field_validator("phone")
    @classmethod
    def _validate_phone(cls, value: str) -> str:
        checked = _check_phone(value)
        if checked is None:
            raise ValueError("phone is required")
        return checked


class RegistrationUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Phone = None
    company: Optional[str] = None
    job_title: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    special_requirements: Optional[str] = Field(default=None, max_length=500)
    seats: Optional[Seats] = None
    ticket_type: Optional[TicketType] = None
    coupon_code: Optional[str] = None


class RegistrationOut(BaseModel):
    id: int
    event_id: int
    user_id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    company: Optional[str] = None
    job_title: Optional[str] = None
    dietary_restrictions: Optional[str] = None
    special_requirements: Optional[str] = None
    seats: int
    ticket_type: TicketType
    coupon_code: Optional[str] = None
    status: RegistrationStatus
    payment_status: PaymentStatus
    payment_method: Optional[PaymentMethod] = None
    subtotal_cents: int
    discount_cents: int
    tax_cents: int
    amount_cents: int
    refunded_cents: int = 0
    currency: str = "USD"
    transaction_id: Optional[str] = None
    ticket_number: str
    checked_in: bool = False
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[int] = None
    registered_at: datetime
    updated_at: datetime
    event_title: Optional[str] = None
    event_start_date: Optional[datetime] = None
    event_location: Optional[str] = None

    @field_validator("ticket_number")
    @classmethod
    def _validate_ticket_number(cls, value: str):
        if not re.match(r"^TKT-[0-9A-Z]{8}$", value):
            raise ValueError("ticket_number format is invalid")
        return value

    @computed_field
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class PaymentRequest(BaseModel):
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None


class RefundRequest(BaseModel):
    reason: str = Field(min_length=3, max_length=500)
    full_refund: bool = True
    amount_cents: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def _partial_needs_amount(self):
        if not self.full_refund and self.amount_cents is None:
            raise ValueError("amount_cents is required for a partial refund")
        return self


class CancelRequest(BaseModel):
    reason: Optional[str] = None


class CheckInRequest(BaseModel):
    qr_payload: str


class BulkIdsRequest(BaseModel):
    ids: List[int] = Field(min_length=1)


class BulkResult(BaseModel):
    succeeded: List[int] = Field(default_factory=list)
    failed: Dict[int, str] = Field(default_factory=dict)


class AuditEntryOut(BaseModel):
    id: int
    registration_id: int
    actor_id: Optional[int] = None
    action: str
    detail: Optional[str] = None
    created_at: datetime


class TicketOut(BaseModel):
    ticket_number: str
    qr_payload: str
    qr_code: str
    attendee_name: str
    email: str
    event_id: int
    event_title: str
    event_start_date: datetime
    event_location: Optional[str] = None
    seats: int
    ticket_type: TicketType
    amount_cents: int
    currency: str
    status: RegistrationStatus


# Listing


class RegistrationFilters(BaseModel):
    search: Optional[str] = None
    event_id: Optional[int] = None
    user_id: Optional[int] = None
    status: Optional[RegistrationStatus] = None
    payment_status: Optional[PaymentStatus] = None
    checked_in: Optional[bool] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class EventFilters(BaseModel):
    search: Optional[str] = None
    category: Optional[str] = None
    status: Optional[EventStatus] = None
    start_from: Optional[date] = None
    start_to: Optional[date] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None


class UserFilters(BaseModel):
    search: Optional[str] = None
    role: Optional[Role] = None
    company_id: Optional[int] = None
    is_active: Optional[bool] = None


class Page(BaseModel, Generic[T]):
    items: List[T]
    total: int
    page: int
    per_page: int
    total_pages: int


# Analytics


class RegistrationStatistics(BaseModel):
    total_registrations: int = 0
    confirmed_registrations: int = 0
    pending_registrations: int = 0
    cancelled_registrations: int = 0
    waitlisted_registrations: int = 0
    total_revenue_cents: int = 0
    average_registration_value_cents: int = 0
    check_in_rate: float = 0.0
    payment_success_rate: float = 0.0


class EventStatistics(BaseModel):
    event_id: int
    registrations: RegistrationStatistics
    seats_sold: int
    available_seats: int
    waitlist_length: int


class CompanyStatistics(BaseModel):
    company_id: int
    users: int
    events: int
    registrations: int
    total_revenue_cents: int
