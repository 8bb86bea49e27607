from datetime import timedelta
from typing import Optional

from billing import clock
from billing.ids import new_id
from billing.models import (
    DeliveryPartner,
    Invoice,
    InvoiceStatus,
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    OrderUpdate,
    calculate_total,
)
from billing.repositories import (
    CustomerRepository,
    DeliveryPartnerRepository,
    InvoiceRepository,
    OrderRepository,
)
from billing.sequences import next_invoice_number, next_order_number
from billing.store import JsonStore

INVOICE_DUE_DAYS = 7


def _delivery_partner_for(request: OrderCreate, store: JsonStore) -> DeliveryPartner:
    if request.delivery_partner_id:
        partner = DeliveryPartnerRepository(store).get(request.delivery_partner_id)
        if partner is not None:
            return partner
        if not request.delivery_partner_name or request.delivery_partner_charges is None:
            raise ValueError(f"Delivery partner '{request.delivery_partner_id}' not found")
    # ad-hoc partner, embedded by value only
    return DeliveryPartner(
        id=new_id("dp"),
        name=request.delivery_partner_name,
        charges=request.delivery_partner_charges,
    )


def place_order(request: OrderCreate, store: JsonStore) -> Optional[Order]:
    """Create an order, registering the customer first if the phone is new.

    Raises ValueError for an unknown delivery partner before anything is
    written. Returns None when the customer or order could not be persisted.
    """
    customers = CustomerRepository(store)

    # ── 1. Delivery partner and totals (may reject; nothing written yet) ─────
    partner = _delivery_partner_for(request, store)
    items = [
        OrderItem(
            id=item.id or f"item_{position}",
            name=item.name,
            quantity=item.quantity,
            price=item.price,
        )
        for position, item in enumerate(request.items, start=1)
    ]
    total = calculate_total(items, partner.charges, request.service_fee)

    # ── 2. Resolve the customer before anything is snapshotted ───────────────
    customer = customers.find_by_phone(request.customer_phone)
    if customer is None:
        customer = customers.create({
            "name": request.customer_name,
            "phone": request.customer_phone,
            "address": request.customer_address,
            "city": request.customer_city,
        })
        if customer is None:
            return None

    # ── 3. Number and persist ────────────────────────────────────────────────
    order_number = next_order_number(store)
    return OrderRepository(store).create(
        {
            "customer_id": customer.id,
            "customer": customer,
            "items": items,
            "delivery_partner_id": partner.id,
            "delivery_partner": partner,
            "service_fee": request.service_fee,
            "gst": 0,  # GST not applied yet
            "total_amount": total,
            "status": OrderStatus.RECEIVED,
            "payment_method": request.payment_method,
        },
        record_id=order_number,
    )


def update_order(
    order_id: str,
    changes: OrderUpdate,
    store: JsonStore,
    recalculate: bool = False,
) -> Optional[Order]:
    """Shallow-merge ``changes`` onto an order.

    The total is left alone unless ``recalculate`` is set, in which case it is
    rebuilt from the merged items, delivery partner and service fee.
    """
    orders = OrderRepository(store)
    # explicit nulls mean "leave as is"
    fields = changes.model_dump(exclude_unset=True, exclude_none=True)

    if changes.delivery_partner_id and changes.delivery_partner is None:
        partner = DeliveryPartnerRepository(store).get(changes.delivery_partner_id)
        if partner is not None:
            fields["delivery_partner"] = partner.model_dump()

    if recalculate:
        current = orders.get(order_id)
        if current is None:
            return None
        merged = current.model_copy(update={
            "items": changes.items if changes.items is not None else current.items,
            "service_fee": changes.service_fee if changes.service_fee is not None else current.service_fee,
        })
        charges = (
            fields["delivery_partner"]["charges"]
            if "delivery_partner" in fields
            else merged.delivery_partner.charges
        )
        fields["total_amount"] = calculate_total(merged.items, charges, merged.service_fee)

    return orders.update(order_id, fields)


def generate_invoice(order_id: str, store: JsonStore) -> Optional[Invoice]:
    """Issue an invoice for an order, embedding the order as it is right now.

    Raises ValueError when the order does not exist; returns None when the
    invoice could not be persisted.
    """
    order = OrderRepository(store).get(order_id)
    if order is None:
        raise ValueError(f"Order '{order_id}' not found")

    invoice_number = next_invoice_number(store)
    issued = clock.now()
    invoice_id = new_id("inv")

    return InvoiceRepository(store).create(
        {
            "order_id": order_id,
            "order": order,
            "invoice_number": invoice_number,
            "issued_date": issued,
            "due_date": issued + timedelta(days=INVOICE_DUE_DAYS),
            "pdf_url": f"/api/v1/invoices/{invoice_id}/download",
            "is_sent": False,
            "status": InvoiceStatus.PENDING,
        },
        record_id=invoice_id,
    )
