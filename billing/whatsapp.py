"""
WhatsApp Cloud API sender.

Only plain text messages are sent; the invoice travels as a download link.
Failures are logged and reported as ``False``, never raised.
"""

import logging

import requests

logger = logging.getLogger(__name__)


def format_inr(amount: float) -> str:
    """Format rupees with Indian digit grouping, e.g. ₹1,23,456.5."""
    sign = "-" if amount < 0 else ""
    whole, _, frac = f"{abs(amount):.2f}".partition(".")
    frac = frac.rstrip("0")

    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    grouped = ",".join(groups + [tail])

    return f"{sign}₹{grouped}" + (f".{frac}" if frac else "")


def invoice_message(customer_name: str, total_amount: float, pdf_url: str) -> str:
    return (
        f"Hey 👋 {customer_name},\n"
        f"Here's your Qubex: BuyNDeliver™ order invoice.\n"
        f"Total: {format_inr(total_amount)} (Item + Delivery + Service Fee).\n"
        f"Download: {pdf_url}\n"
        f"— QuickBuy Boy Team 💛"
    )


def send_text(
    phone_number: str,
    body: str,
    access_token: str,
    phone_number_id: str,
    api_url: str,
    timeout: float = 10.0,
) -> bool:
    try:
        resp = requests.post(
            f"{api_url.rstrip('/')}/{phone_number_id}/messages",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            json={
                "messaging_product": "whatsapp",
                "to": phone_number,
                "type": "text",
                "text": {"body": body},
            },
            timeout=timeout,
        )
    except requests.RequestException as exc:
        logger.error("Error sending WhatsApp message to %s: %s", phone_number, exc)
        return False

    if not resp.ok:
        logger.error("WhatsApp API error %s: %s", resp.status_code, resp.text[:500])
        return False

    logger.info("WhatsApp message sent to %s", phone_number)
    return True


def send_invoice(
    phone_number: str,
    pdf_url: str,
    customer_name: str,
    total_amount: float,
    access_token: str,
    phone_number_id: str,
    api_url: str,
    timeout: float = 10.0,
) -> bool:
    return send_text(
        phone_number,
        invoice_message(customer_name, total_amount, pdf_url),
        access_token,
        phone_number_id,
        api_url,
        timeout,
    )
