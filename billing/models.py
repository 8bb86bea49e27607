from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase keys in the JSON document and API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class OrderStatus(str, Enum):
    RECEIVED = "received"
    PROCESSING = "processing"
    INVOICED = "invoiced"
    DELIVERED = "delivered"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    ONLINE = "Online"
    CASH = "Cash"


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class PrinterType(str, Enum):
    BLUETOOTH = "bluetooth"
    USB = "usb"
    NETWORK = "network"
    BROWSER = "browser"


# ── Entities ─────────────────────────────────────────────────────────────────

class Customer(CamelModel):
    id: str
    name: str
    phone: str
    address: str
    city: str
    created_at: datetime


class DeliveryPartner(CamelModel):
    id: str
    name: str
    charges: float  # flat fee per order


class OrderItem(CamelModel):
    id: str
    name: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class Order(CamelModel):
    id: str  # the ORD-QBX order number
    customer_id: str
    customer: Customer
    items: list[OrderItem]
    delivery_partner_id: str
    delivery_partner: DeliveryPartner
    service_fee: float
    gst: float = 0
    # fixed at creation; only recomputed when a caller asks for it
    total_amount: float
    status: OrderStatus = OrderStatus.RECEIVED
    payment_method: PaymentMethod
    created_at: datetime
    updated_at: datetime

    @property
    def subtotal(self) -> float:
        return sum(item.quantity * item.price for item in self.items)


class Invoice(CamelModel):
    id: str
    order_id: str
    order: Order  # snapshot taken when the invoice was generated
    invoice_number: str
    issued_date: datetime
    due_date: datetime
    pdf_url: str
    is_sent: bool = False
    sent_at: Optional[datetime] = None
    status: InvoiceStatus = InvoiceStatus.PENDING
    created_at: datetime


class Payment(CamelModel):
    id: str
    order_id: str
    amount: float
    method: PaymentMethod
    transaction_id: Optional[str] = None
    paid_at: datetime


class Document(CamelModel):
    """The whole persisted database."""

    customers: list[Customer] = []
    orders: list[Order] = []
    delivery_partners: list[DeliveryPartner] = []
    invoices: list[Invoice] = []
    payments: list[Payment] = []


def calculate_total(items: list[OrderItem], delivery_charges: float, service_fee: float) -> float:
    """Items subtotal + delivery charge + service fee. GST is not applied."""
    return sum(item.quantity * item.price for item in items) + delivery_charges + service_fee


# ── Request models ───────────────────────────────────────────────────────────

class CustomerCreate(CamelModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)


class CustomerUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None


class OrderItemIn(CamelModel):
    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)


class OrderCreate(CamelModel):
    customer_name: str = Field(..., min_length=1)
    customer_phone: str = Field(..., min_length=1)
    customer_address: str = Field(..., min_length=1)
    customer_city: str = Field(..., min_length=1)
    items: list[OrderItemIn] = Field(..., min_length=1)
    # either a seeded partner id, or an ad-hoc name + charges
    delivery_partner_id: Optional[str] = None
    delivery_partner_name: Optional[str] = None
    delivery_partner_charges: Optional[float] = Field(None, ge=0)
    service_fee: float = Field(..., ge=0)
    payment_method: PaymentMethod

    @model_validator(mode="after")
    def _check_delivery_partner(self):
        if self.delivery_partner_id:
            return self
        if not self.delivery_partner_name or self.delivery_partner_charges is None:
            raise ValueError(
                "deliveryPartnerId or deliveryPartnerName and deliveryPartnerCharges are required"
            )
        return self


class OrderUpdate(CamelModel):
    items: Optional[list[OrderItem]] = None
    delivery_partner_id: Optional[str] = None
    delivery_partner: Optional[DeliveryPartner] = None
    service_fee: Optional[float] = None
    gst: Optional[float] = None
    total_amount: Optional[float] = None
    status: Optional[OrderStatus] = None
    payment_method: Optional[PaymentMethod] = None


class InvoiceCreate(CamelModel):
    order_id: str = Field(..., min_length=1)


class InvoiceStatusUpdate(CamelModel):
    status: InvoiceStatus


class PaymentCreate(CamelModel):
    order_id: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    method: PaymentMethod
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None


class WhatsAppSendRequest(CamelModel):
    # all optional: fall back to the customer's phone and configured credentials
    phone_number: Optional[str] = None
    access_token: Optional[str] = None
    phone_number_id: Optional[str] = None


class PrinterConfig(CamelModel):
    id: str = Field(..., min_length=1)
    name: str
    type: PrinterType = PrinterType.BROWSER
    mac: Optional[str] = None
    port: Optional[str] = None
    ip_address: Optional[str] = None


# ── Response models ──────────────────────────────────────────────────────────

class Revenue(CamelModel):
    today: float = 0
    week: float = 0
    month: float = 0


class CityOrders(CamelModel):
    city: str
    count: int


class TopCustomer(CamelModel):
    customer: Customer
    order_count: int
    total_spent: float


class PaymentBreakdown(BaseModel):
    # keys are the payment method labels, kept verbatim
    UPI: int = 0
    Cash: int = 0
    Online: int = 0


class Analytics(CamelModel):
    revenue: Revenue = Revenue()
    service_fee_collection: float = 0
    city_wise_orders: list[CityOrders] = []
    top_customers: list[TopCustomer] = []
    pending_invoices: int = 0
    payment_breakdown: PaymentBreakdown = PaymentBreakdown()


class PrintResult(CamelModel):
    success: bool
    method: str
    message: str
    job_id: Optional[str] = None
