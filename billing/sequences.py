import logging
from datetime import datetime
from typing import Optional

from billing import clock
from billing.models import Document
from billing.store import JsonStore, StoreError

logger = logging.getLogger(__name__)

ORDER_PREFIX = "ORD-QBX"
INVOICE_PREFIX = "INV-QBX"


def _date_str(day: datetime) -> str:
    return day.strftime("%Y%m%d")


def _same_day(stamp: Optional[datetime], today: datetime) -> bool:
    return stamp is not None and clock.to_local(stamp).date() == today.date()


def order_number_for(doc: Document, today: datetime) -> str:
    todays = [o for o in doc.orders if _same_day(o.created_at, today)]
    return f"{ORDER_PREFIX}-{_date_str(today)}-{len(todays) + 1:02d}"


def invoice_number_for(doc: Document, today: datetime) -> str:
    # first invoice of the day carries no sequence suffix
    todays = [i for i in doc.invoices if _same_day(i.issued_date, today)]
    if not todays:
        return f"{INVOICE_PREFIX}-{_date_str(today)}"
    return f"{INVOICE_PREFIX}-{_date_str(today)}{len(todays) + 1}"


def next_order_number(store: JsonStore) -> str:
    today = clock.now()
    try:
        doc = store.load()
    except StoreError:
        logger.exception("Error generating order number")
        return f"{ORDER_PREFIX}-{_date_str(today)}-01"
    return order_number_for(doc, today)


def next_invoice_number(store: JsonStore) -> str:
    today = clock.now()
    try:
        doc = store.load()
    except StoreError:
        logger.exception("Error generating invoice number")
        return f"{INVOICE_PREFIX}-{_date_str(today)}"
    return invoice_number_for(doc, today)
