from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from app.models.purchase_order import ApprovalStatus, ChargeStatus, POStatus


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


# =========================
# Input
# =========================
class ChargeIn(BaseModel):
    status: Optional[ChargeStatus] = None
    amount: Optional[Decimal] = None

    _blank = field_validator("status", "amount", mode="before")(_blank_to_none)


class POLineIn(BaseModel):
    id: Optional[int] = None  # existing line on update
    item_id: int
    remark: Optional[str] = None
    qty: Decimal
    rate: Decimal = Field(default=Decimal("0"))
    discount_percent: Decimal = Field(default=Decimal("0"))
    cgst_percent: Decimal = Field(default=Decimal("0"))
    sgst_percent: Decimal = Field(default=Decimal("0"))
    igst_percent: Decimal = Field(default=Decimal("0"))
    indent_item_id: Optional[int] = None


class _HeaderFields(BaseModel):
    order_date: Optional[date] = None
    delivery_date: Optional[date] = None
    site_id: Optional[int] = None
    vendor_id: Optional[int] = None
    billing_address_id: Optional[int] = None
    delivery_address_id: Optional[int] = None
    payment_term_ids: Optional[List[int]] = None
    payment_terms_in_days: Optional[int] = None
    quotation_number: Optional[str] = None
    quotation_date: Optional[date] = None
    transport: Optional[str] = None
    delivery_schedule: Optional[str] = None
    note: Optional[str] = None
    terms: Optional[str] = None

    transit_insurance: Optional[ChargeIn] = None
    transport_charge: Optional[ChargeIn] = None
    gst_reverse: Optional[ChargeIn] = None

    _blank = field_validator("quotation_number", mode="before")(_blank_to_none)


class POCreateIn(_HeaderFields):
    indent_id: Optional[int] = None
    po_status: Optional[POStatus] = None
    lines: List[POLineIn] = Field(default_factory=list)


class POUpdateIn(_HeaderFields):
    """
    DRAFT edit. Header/line fields need a DRAFT order; remarks, bill_status and
    po_status may be sent alone at any stage.
    """
    lines: Optional[List[POLineIn]] = None

    remarks: Optional[str] = None
    bill_status: Optional[str] = None
    po_status: Optional[POStatus] = None


ANNOTATION_FIELDS = ("remarks", "bill_status", "po_status")


class _ApprovalLineIn(BaseModel):
    id: int
    remark: Optional[str] = None
    rate: Optional[Decimal] = None
    discount_percent: Optional[Decimal] = None
    cgst_percent: Optional[Decimal] = None
    sgst_percent: Optional[Decimal] = None
    igst_percent: Optional[Decimal] = None


class Approve1LineIn(_ApprovalLineIn):
    approved1_qty: Optional[Decimal] = None


class Approve2LineIn(_ApprovalLineIn):
    approved2_qty: Optional[Decimal] = None


class _ApprovalFields(BaseModel):
    note: Optional[str] = None
    transport: Optional[str] = None
    delivery_schedule: Optional[str] = None
    terms: Optional[str] = None
    transit_insurance: Optional[ChargeIn] = None
    transport_charge: Optional[ChargeIn] = None
    gst_reverse: Optional[ChargeIn] = None


class Approve1In(_ApprovalFields):
    status_action: Literal["approve1"]
    lines: Optional[List[Approve1LineIn]] = None


class Approve2In(_ApprovalFields):
    status_action: Literal["approve2"]
    lines: Optional[List[Approve2LineIn]] = None


class CompleteIn(BaseModel):
    status_action: Literal["complete"]


class SuspendIn(BaseModel):
    status_action: Literal["suspend"]


class UnsuspendIn(BaseModel):
    status_action: Literal["unsuspend"]


TransitionIn = Annotated[
    Union[Approve1In, Approve2In, CompleteIn, SuspendIn, UnsuspendIn],
    Field(discriminator="status_action"),
]

transition_adapter: TypeAdapter = TypeAdapter(TransitionIn)


def parse_patch_body(body: Dict[str, Any]) -> Union[POUpdateIn, Approve1In, Approve2In, CompleteIn, SuspendIn, UnsuspendIn]:
    """A body carrying status_action is a transition; anything else is an edit."""
    if isinstance(body, dict) and body.get("status_action") is not None:
        return transition_adapter.validate_python(body)
    return POUpdateIn.model_validate(body)


# =========================
# Output
# =========================
class SiteMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    site: str
    site_code: Optional[str] = None


class VendorMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    vendor_name: str


class BillingAddressMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    company_name: str
    address_line1: Optional[str] = None
    city: Optional[str] = None


class DeliveryAddressMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pin_code: Optional[str] = None


class PaymentTermMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    payment_term: str
    description: Optional[str] = None


class UserMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    name: str


class ItemMini(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    item_code: str
    item: str


class ChargeOut(BaseModel):
    status: Optional[ChargeStatus] = None
    amount: Optional[Decimal] = None


class POLineOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    serial_no: int
    item_id: int
    item: Optional[ItemMini] = None
    remark: Optional[str] = None

    qty: Decimal
    ordered_qty: Optional[Decimal] = None
    approved1_qty: Optional[Decimal] = None
    approved2_qty: Optional[Decimal] = None

    rate: Decimal
    discount_percent: Decimal
    dis_amount: Decimal
    cgst_percent: Decimal
    cgst_amount: Decimal
    sgst_percent: Decimal
    sgst_amount: Decimal
    igst_percent: Decimal
    igst_amount: Decimal
    amount: Decimal


class POOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    order_date: date
    delivery_date: date

    site_id: int
    vendor_id: int
    billing_address_id: int
    delivery_address_id: int
    payment_term_id: Optional[int] = None
    payment_term_ids: List[int] = Field(default_factory=list)
    payment_terms_in_days: Optional[int] = None
    indent_id: Optional[int] = None

    quotation_number: str
    quotation_date: date
    transport: Optional[str] = None
    delivery_schedule: Optional[str] = None
    note: Optional[str] = None
    terms: Optional[str] = None

    approval_status: ApprovalStatus
    is_suspended: bool
    is_complete: bool
    po_status: Optional[POStatus] = None
    bill_status: Optional[str] = None
    remarks: Optional[str] = None

    transit_insurance_status: Optional[ChargeStatus] = None
    transit_insurance_amount: Optional[Decimal] = None
    transport_charge_status: Optional[ChargeStatus] = None
    transport_charge_amount: Optional[Decimal] = None
    gst_reverse_status: Optional[ChargeStatus] = None
    gst_reverse_amount: Optional[Decimal] = None

    total_amount: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    total_discount: Decimal
    amount_in_words: str

    created_by_id: Optional[int] = None
    approved1_by_id: Optional[int] = None
    approved1_at: Optional[datetime] = None
    approved2_by_id: Optional[int] = None
    approved2_at: Optional[datetime] = None
    suspended_by_id: Optional[int] = None
    suspended_at: Optional[datetime] = None
    completed_by_id: Optional[int] = None
    completed_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime

    site: Optional[SiteMini] = None
    vendor: Optional[VendorMini] = None
    billing_address: Optional[BillingAddressMini] = None
    delivery_address: Optional[DeliveryAddressMini] = None
    payment_term: Optional[PaymentTermMini] = None
    created_by: Optional[UserMini] = None
    approved1_by: Optional[UserMini] = None
    approved2_by: Optional[UserMini] = None

    details: List[POLineOut] = Field(default_factory=list)

    # computed for UI
    display_status: str = ""


class POListRowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_number: str
    order_date: date
    delivery_date: date
    site_id: int
    vendor_id: int
    quotation_number: str
    total_amount: Decimal
    approval_status: ApprovalStatus
    is_suspended: bool
    is_complete: bool
    po_status: Optional[POStatus] = None
    bill_status: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    site: Optional[SiteMini] = None
    vendor: Optional[VendorMini] = None
    created_by: Optional[UserMini] = None

    display_status: str = ""
