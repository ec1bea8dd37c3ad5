import datetime as dt
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .domain.availability import DayState, SlotState, WeekAvailability
from .domain.catalog import price_to_minor
from .models import ItemType
from .usecases.checkout import UNIT_PRICING, CheckoutDraft, CheckoutResult
from .usecases.cleanup import CleanupReport
from .utils.time import parse_iso_date


class SlotRead(BaseModel):
    slot: Optional[str]
    capacity: int
    booked: int
    remaining: int
    state: SlotState


class DayRead(BaseModel):
    date: dt.date
    slots: List[SlotRead]
    state: DayState


class WeekAvailabilityRead(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: ItemType
    slug: str
    week_start: dt.date = Field(serialization_alias="weekStart")
    days: List[DayRead]

    @classmethod
    def from_domain(cls, week: WeekAvailability) -> "WeekAvailabilityRead":
        return cls(
            type=week.item.item_type,
            slug=week.item.slug,
            week_start=week.week_start,
            days=[
                DayRead(
                    date=day.date,
                    slots=[
                        SlotRead(
                            slot=slot.slot,
                            capacity=slot.capacity,
                            booked=slot.booked,
                            remaining=slot.remaining,
                            state=slot.state,
                        )
                        for slot in day.slots
                    ],
                    state=day.state,
                )
                for day in week.days
            ],
        )


class CheckoutCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_name: Optional[str] = None
    service_slug: Optional[str] = None
    subscription_slug: Optional[str] = None
    item_type: ItemType = ItemType.SERVICE
    pricing_option: str = UNIT_PRICING
    pricing_label: str = ""
    amount: Optional[Union[float, str]] = None
    amount_minor: Optional[int] = None
    currency: str = "EUR"
    customer_email: Optional[str] = None
    customer_first_name: str = ""
    customer_last_name: str = ""
    customer_phone: Optional[str] = None
    scheduled_date: Optional[str] = None
    time_slot: Optional[str] = None

    @field_validator(
        "service_name",
        "service_slug",
        "subscription_slug",
        "customer_email",
        "customer_phone",
        "scheduled_date",
        "time_slot",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("item_type", mode="before")
    @classmethod
    def _default_item_type(cls, value: object) -> object:
        return value or ItemType.SERVICE

    def resolved_amount_minor(self) -> Optional[int]:
        if self.amount_minor is not None:
            return int(self.amount_minor)
        return price_to_minor(self.amount)

    def to_draft(self) -> CheckoutDraft:
        return CheckoutDraft(
            service_name=self.service_name,
            customer_email=self.customer_email,
            scheduled_date=parse_iso_date(self.scheduled_date),
            amount_minor=self.resolved_amount_minor(),
            service_slug=self.service_slug,
            subscription_slug=self.subscription_slug,
            item_type=self.item_type,
            pricing_option=self.pricing_option or UNIT_PRICING,
            pricing_label=self.pricing_label or "",
            currency=self.currency or "EUR",
            customer_first_name=self.customer_first_name or "",
            customer_last_name=self.customer_last_name or "",
            customer_phone=self.customer_phone,
            time_slot=self.time_slot.strip() if self.time_slot else None,
        )


class CheckoutRead(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    redirect_url: Optional[str]
    hosted_checkout_id: Optional[str]
    partial_redirect_url: Optional[str]
    order_id: str
    return_url: Optional[str] = None

    @classmethod
    def from_result(cls, result: CheckoutResult, *, expose_debug: bool) -> "CheckoutRead":
        return cls(
            redirect_url=result.session.redirect_url,
            hosted_checkout_id=result.session.session_id,
            partial_redirect_url=result.session.partial_redirect_url,
            order_id=result.order_id,
            return_url=result.return_url if expose_debug else None,
        )


class CleanupRequest(BaseModel):
    days: Optional[int] = Field(default=None, ge=0)
    statuses: Optional[List[str]] = None


class CleanupFailureRead(BaseModel):
    id: str
    message: str


class CleanupRead(BaseModel):
    ok: bool = True
    scanned: int
    deleted: List[str]
    failed: List[CleanupFailureRead]

    @classmethod
    def from_report(cls, report: CleanupReport) -> "CleanupRead":
        return cls(
            scanned=report.scanned,
            deleted=list(report.deleted),
            failed=[CleanupFailureRead(id=f.order_id, message=f.message) for f in report.failed],
        )
