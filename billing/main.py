import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Response

from billing import clock
from billing.analytics import get_analytics
from billing.config import Settings, get_settings
from billing.engine import generate_invoice, place_order, update_order
from billing.models import (
    CustomerCreate,
    CustomerUpdate,
    InvoiceCreate,
    InvoiceStatusUpdate,
    OrderCreate,
    OrderUpdate,
    PaymentCreate,
    PrinterConfig,
    WhatsAppSendRequest,
)
from billing.pdf import render_invoice_pdf
from billing.printing import BLUETOOTH, dispatch
from billing.repositories import (
    CustomerRepository,
    DeliveryPartnerRepository,
    InvoiceRepository,
    OrderRepository,
    PaymentRepository,
)
from billing.store import JsonStore, StoreError
from billing.whatsapp import send_invoice

logger = logging.getLogger(__name__)

store = JsonStore(get_settings().db_path)


def get_store() -> JsonStore:
    return store


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Create the seeded database on first start so the dashboard is usable
    try:
        store.load()
    except StoreError:
        logger.exception("Database at %s is not readable", store.path)
    yield


app = FastAPI(
    title="Billing Dashboard Service",
    version="1.0.0",
    description="Order intake, invoicing, analytics and invoice delivery",
    lifespan=lifespan,
)


# ── Customers ────────────────────────────────────────────────────────────────

@app.get("/api/v1/customers", summary="List all customers")
def list_customers(store: JsonStore = Depends(get_store)):
    return {"success": True, "customers": [c.to_json() for c in CustomerRepository(store).list()]}


@app.post("/api/v1/customers", summary="Create a customer")
def create_customer(payload: CustomerCreate, store: JsonStore = Depends(get_store)):
    customer = CustomerRepository(store).create(payload.model_dump())
    if customer is None:
        raise HTTPException(500, "Failed to create customer")
    return {"success": True, "customer": customer.to_json()}


@app.get("/api/v1/customers/{customer_id}", summary="Get customer details")
def get_customer(customer_id: str, store: JsonStore = Depends(get_store)):
    customer = CustomerRepository(store).get(customer_id)
    if not customer:
        raise HTTPException(404, f"Customer '{customer_id}' not found")
    return {"success": True, "customer": customer.to_json()}


@app.patch("/api/v1/customers/{customer_id}", summary="Update customer details")
def patch_customer(customer_id: str, payload: CustomerUpdate, store: JsonStore = Depends(get_store)):
    # explicit nulls mean "leave as is"
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    customer = CustomerRepository(store).update(customer_id, changes)
    if not customer:
        raise HTTPException(404, "Customer not found or failed to update")
    return {"success": True, "customer": customer.to_json()}


# ── Delivery partners ────────────────────────────────────────────────────────

@app.get("/api/v1/delivery-partners", summary="List delivery partners")
def list_delivery_partners(store: JsonStore = Depends(get_store)):
    partners = DeliveryPartnerRepository(store).list()
    return {"success": True, "deliveryPartners": [p.to_json() for p in partners]}


# ── Orders ───────────────────────────────────────────────────────────────────

@app.get("/api/v1/orders", summary="List orders with customer and partner resolved")
def list_orders(store: JsonStore = Depends(get_store)):
    return {"success": True, "orders": [o.to_json() for o in OrderRepository(store).list()]}


@app.post("/api/v1/orders", summary="Place an order")
def create_order(payload: OrderCreate, store: JsonStore = Depends(get_store)):
    try:
        order = place_order(payload, store)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    if order is None:
        raise HTTPException(500, "Failed to create order")
    return {"success": True, "order": order.to_json(), "message": "Order created successfully"}


@app.get("/api/v1/orders/{order_id}", summary="Get order details")
def get_order(order_id: str, store: JsonStore = Depends(get_store)):
    order = OrderRepository(store).get(order_id)
    if not order:
        raise HTTPException(404, "Order not found")
    return {"success": True, "order": order.to_json()}


@app.patch("/api/v1/orders/{order_id}", summary="Update an order")
def patch_order(
    order_id: str,
    payload: OrderUpdate,
    recalculate: bool = Query(False, description="Rebuild totalAmount from the merged order"),
    store: JsonStore = Depends(get_store),
):
    order = update_order(order_id, payload, store, recalculate=recalculate)
    if not order:
        raise HTTPException(404, "Order not found or failed to update")
    return {"success": True, "order": order.to_json(), "message": "Order updated successfully"}


@app.delete("/api/v1/orders/{order_id}", summary="Delete an order")
def delete_order(order_id: str, store: JsonStore = Depends(get_store)):
    if not OrderRepository(store).delete(order_id):
        raise HTTPException(404, "Order not found or failed to delete")
    return {"success": True, "message": "Order deleted successfully"}


@app.get("/api/v1/orders/{order_id}/payments", summary="Payments recorded against an order")
def list_order_payments(order_id: str, store: JsonStore = Depends(get_store)):
    payments = PaymentRepository(store).list_for_order(order_id)
    return {"success": True, "payments": [p.to_json() for p in payments]}


# ── Invoices ─────────────────────────────────────────────────────────────────

@app.get("/api/v1/invoices", summary="List invoices with their orders resolved")
def list_invoices(store: JsonStore = Depends(get_store)):
    return {"success": True, "invoices": [i.to_json() for i in InvoiceRepository(store).list()]}


@app.post("/api/v1/invoices", summary="Generate an invoice for an order")
def create_invoice(payload: InvoiceCreate, store: JsonStore = Depends(get_store)):
    try:
        invoice = generate_invoice(payload.order_id, store)
    except ValueError as exc:
        raise HTTPException(404, str(exc))
    if invoice is None:
        raise HTTPException(500, "Failed to create invoice")
    return {"success": True, "invoice": invoice.to_json(), "message": "Invoice generated successfully"}


@app.get("/api/v1/invoices/{invoice_id}", summary="Get invoice details")
def get_invoice(invoice_id: str, store: JsonStore = Depends(get_store)):
    invoice = InvoiceRepository(store).get(invoice_id)
    if not invoice:
        raise HTTPException(404, "Invoice not found")
    return {"success": True, "invoice": invoice.to_json()}


@app.put("/api/v1/invoices/{invoice_id}/status", summary="Set invoice status")
def put_invoice_status(invoice_id: str, payload: InvoiceStatusUpdate, store: JsonStore = Depends(get_store)):
    invoice = InvoiceRepository(store).update_status(invoice_id, payload.status)
    if not invoice:
        raise HTTPException(404, "Invoice not found or failed to update")
    return {"success": True, "invoice": invoice.to_json(), "message": "Invoice status updated successfully"}


@app.delete("/api/v1/invoices/{invoice_id}", summary="Delete an invoice")
def delete_invoice(invoice_id: str, store: JsonStore = Depends(get_store)):
    if not InvoiceRepository(store).delete(invoice_id):
        raise HTTPException(404, "Invoice not found or failed to delete")
    return {"success": True, "message": "Invoice deleted successfully"}


@app.get("/api/v1/invoices/{invoice_id}/download", summary="Download the invoice PDF")
def download_invoice(invoice_id: str, store: JsonStore = Depends(get_store)):
    invoice = InvoiceRepository(store).get(invoice_id)
    if not invoice:
        raise HTTPException(404, "Invoice not found")
    pdf = render_invoice_pdf(invoice.order, invoice.invoice_number, invoice.issued_date, invoice.due_date)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{invoice.invoice_number}.pdf"'},
    )


@app.post("/api/v1/invoices/{invoice_id}/whatsapp", summary="Send the invoice link over WhatsApp")
def whatsapp_invoice(
    invoice_id: str,
    payload: Optional[WhatsAppSendRequest] = None,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    payload = payload or WhatsAppSendRequest()
    invoices = InvoiceRepository(store)
    invoice = invoices.get(invoice_id)
    if not invoice:
        raise HTTPException(404, "Invoice not found")

    access_token = payload.access_token or settings.whatsapp_access_token
    phone_number_id = payload.phone_number_id or settings.whatsapp_phone_number_id
    if not access_token or not phone_number_id:
        raise HTTPException(400, "WhatsApp access token and phone number id are required")

    customer = invoice.order.customer
    sent = send_invoice(
        phone_number=payload.phone_number or customer.phone,
        pdf_url=settings.public_base_url.rstrip("/") + invoice.pdf_url,
        customer_name=customer.name,
        total_amount=invoice.order.total_amount,
        access_token=access_token,
        phone_number_id=phone_number_id,
        api_url=settings.whatsapp_api_url,
        timeout=settings.http_timeout,
    )
    if not sent:
        raise HTTPException(502, "Failed to send invoice via WhatsApp")

    invoices.mark_sent(invoice_id)
    return {"success": True, "message": "Invoice sent successfully via WhatsApp"}


@app.post("/api/v1/invoices/{invoice_id}/print", summary="Print the invoice")
def print_invoice(
    invoice_id: str,
    printer: PrinterConfig,
    store: JsonStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    invoice = InvoiceRepository(store).get(invoice_id)
    if not invoice:
        raise HTTPException(404, "Invoice not found")
    pdf = render_invoice_pdf(invoice.order, invoice.invoice_number, invoice.issued_date, invoice.due_date)
    result = dispatch(pdf, printer, settings.print_agent_url, settings.http_timeout)
    if not result.success:
        raise HTTPException(400 if result.method == BLUETOOTH else 502, result.message)
    return {"success": True, "print": result.to_json(), "pdfUrl": invoice.pdf_url}


# ── Payments ─────────────────────────────────────────────────────────────────

@app.get("/api/v1/payments", summary="List payments")
def list_payments(store: JsonStore = Depends(get_store)):
    return {"success": True, "payments": [p.to_json() for p in PaymentRepository(store).list()]}


@app.post("/api/v1/payments", summary="Record a payment")
def create_payment(payload: PaymentCreate, store: JsonStore = Depends(get_store)):
    fields = payload.model_dump()
    fields["paid_at"] = payload.paid_at or clock.now()
    payment = PaymentRepository(store).create(fields)
    if payment is None:
        raise HTTPException(500, "Failed to record payment")
    return {"success": True, "payment": payment.to_json()}


# ── Analytics ────────────────────────────────────────────────────────────────

@app.get("/api/v1/analytics", summary="Revenue, city, customer and payment rollups")
def analytics(store: JsonStore = Depends(get_store)):
    return {"success": True, "analytics": get_analytics(store).to_json()}


# ── Admin ────────────────────────────────────────────────────────────────────

@app.post("/api/v1/admin/reset", summary="Reset the database to the seeded default")
def reset(store: JsonStore = Depends(get_store)):
    try:
        doc = store.reset()
    except StoreError as exc:
        raise HTTPException(500, str(exc))
    return {"status": "reset", "deliveryPartners": len(doc.delivery_partners)}
