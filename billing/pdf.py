import logging
from datetime import datetime
from typing import Optional

from fpdf import FPDF

from billing import clock
from billing.models import Order

logger = logging.getLogger(__name__)

BRAND = "Qubex: BuyNDeliver"
TAGLINE = "An initiative by QuickBuy Boy"


def _text(value: str) -> str:
    # core fonts are latin-1 only
    return value.encode("latin-1", "replace").decode("latin-1")


def _money(amount: float) -> str:
    # core PDF fonts have no rupee glyph
    return f"Rs. {amount:,.2f}"


def render_invoice_pdf(
    order: Order,
    invoice_number: str,
    issued_date: Optional[datetime] = None,
    due_date: Optional[datetime] = None,
) -> bytes:
    """Render an A4 invoice for ``order`` and return the PDF bytes."""
    issued = issued_date or clock.now()

    pdf = FPDF(format="A4")
    pdf.set_title(invoice_number)
    pdf.add_page()
    pdf.set_auto_page_break(auto=True, margin=15)

    # --- Header ---
    pdf.set_font("Helvetica", "B", 20)
    pdf.set_text_color(77, 77, 230)
    pdf.cell(0, 10, BRAND, new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.set_font("Helvetica", "", 11)
    pdf.cell(0, 6, TAGLINE, new_x="LMARGIN", new_y="NEXT")
    pdf.ln(6)

    # --- Invoice info ---
    pdf.set_font("Helvetica", "", 11)
    pdf.cell(95, 6, f"Invoice #: {invoice_number}", new_x="RIGHT")
    pdf.cell(95, 6, f"Date: {issued:%d/%m/%Y}", align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(95, 6, f"Order #: {order.id}", new_x="RIGHT")
    if due_date is not None:
        pdf.cell(95, 6, f"Due: {due_date:%d/%m/%Y}", align="R", new_x="LMARGIN", new_y="NEXT")
    else:
        pdf.ln(6)
    pdf.ln(4)

    # --- Bill To / Delivery ---
    pdf.set_fill_color(240, 240, 240)
    pdf.set_font("Helvetica", "B", 11)
    pdf.cell(95, 7, "  Bill To", fill=True, new_x="RIGHT")
    pdf.cell(95, 7, "  Delivery Partner", fill=True, new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    customer, partner = order.customer, order.delivery_partner
    left = [_text(customer.name), _text(customer.address), _text(customer.city), f"Phone: {customer.phone}"]
    right = [_text(partner.name), f"Charges: {_money(partner.charges)}", "", ""]
    for l_line, r_line in zip(left, right):
        pdf.cell(95, 6, f"  {l_line}", new_x="RIGHT")
        pdf.cell(95, 6, f"  {r_line}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # --- Items table ---
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(80, 7, "  Item", border="B")
    pdf.cell(25, 7, "Qty", border="B", align="C")
    pdf.cell(40, 7, "Price", border="B", align="R")
    pdf.cell(45, 7, "Amount", border="B", align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 10)
    for item in order.items:
        pdf.cell(80, 6, f"  {_text(item.name)}")
        pdf.cell(25, 6, str(item.quantity), align="C")
        pdf.cell(40, 6, _money(item.price), align="R")
        pdf.cell(45, 6, _money(item.quantity * item.price), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # --- Totals ---
    rows = [
        ("Subtotal", order.subtotal),
        ("Delivery Charges", order.delivery_partner.charges),
        ("Service Fee", order.service_fee),
        ("GST", order.gst),
    ]
    for label, amount in rows:
        pdf.cell(145, 6, f"{label}:", align="R", new_x="RIGHT")
        pdf.cell(45, 6, _money(amount), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(145, 8, "Total:", align="R", new_x="RIGHT")
    pdf.cell(45, 8, _money(order.total_amount), align="R", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(8)

    # --- Footer ---
    pdf.set_font("Helvetica", "I", 9)
    pdf.cell(0, 5, f"Payment method: {order.payment_method.value}", new_x="LMARGIN", new_y="NEXT", align="C")
    pdf.cell(0, 5, "Thank you for your business!", new_x="LMARGIN", new_y="NEXT", align="C")

    data = bytes(pdf.output())
    logger.info("Invoice PDF rendered: %s (%d bytes)", invoice_number, len(data))
    return data
