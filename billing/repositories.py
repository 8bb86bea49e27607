"""
Per-entity CRUD over the JSON document.

Each method performs one full load -> mutate -> save cycle. Storage
failures are logged and turned into the same sentinel a miss produces
(``None``, ``[]`` or ``False``), so callers cannot tell the two apart.
"""

import logging
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel

from billing import clock
from billing.ids import new_id
from billing.models import (
    Customer,
    DeliveryPartner,
    Document,
    Invoice,
    InvoiceStatus,
    Order,
    Payment,
)
from billing.store import JsonStore, StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _find(records: list, record_id: str):
    return next((r for r in records if r.id == record_id), None)


def _index_of(records: list, record_id: str) -> int:
    return next((i for i, r in enumerate(records) if r.id == record_id), -1)


class Repository(Generic[T]):
    model: type
    collection: str  # attribute name on Document
    prefix: str
    # timestamp fields stamped on create / on every update
    created_fields: tuple = ("created_at",)
    updated_fields: tuple = ()

    def __init__(self, store: JsonStore) -> None:
        self.store = store

    @property
    def entity(self) -> str:
        return self.model.__name__.lower()

    def _records(self, doc: Document) -> list:
        return getattr(doc, self.collection)

    def _resolve(self, doc: Document, record: T) -> T:
        return record

    # ── reads ─────────────────────────────────────────────────────────────────

    def list(self) -> list[T]:
        try:
            doc = self.store.load()
        except StoreError:
            logger.exception("Error fetching %s list", self.entity)
            return []
        return [self._resolve(doc, r) for r in self._records(doc)]

    def get(self, record_id: str) -> Optional[T]:
        try:
            doc = self.store.load()
        except StoreError:
            logger.exception("Error fetching %s %s", self.entity, record_id)
            return None
        record = _find(self._records(doc), record_id)
        if record is None:
            return None
        return self._resolve(doc, record)

    # ── writes ────────────────────────────────────────────────────────────────

    def create(self, fields: dict[str, Any], record_id: Optional[str] = None) -> Optional[T]:
        now = clock.now()
        values = {**fields, "id": record_id or new_id(self.prefix)}
        for name in self.created_fields + self.updated_fields:
            values[name] = now
        record = self.model.model_validate(values)
        try:
            doc = self.store.load()
            self._records(doc).append(record)
            self.store.save(doc)
        except StoreError:
            logger.exception("Error creating %s", self.entity)
            return None
        logger.info("Created %s %s", self.entity, record.id)
        return record

    def update(self, record_id: str, fields: dict[str, Any]) -> Optional[T]:
        try:
            doc = self.store.load()
            records = self._records(doc)
            index = _index_of(records, record_id)
            if index == -1:
                return None
            merged = {**records[index].model_dump(), **fields}
            for name in self.updated_fields:
                merged[name] = clock.now()
            records[index] = self.model.model_validate(merged)
            self.store.save(doc)
        except StoreError:
            logger.exception("Error updating %s %s", self.entity, record_id)
            return None
        return records[index]

    def delete(self, record_id: str) -> bool:
        try:
            doc = self.store.load()
            records = self._records(doc)
            index = _index_of(records, record_id)
            if index == -1:
                return False
            del records[index]
            self.store.save(doc)
        except StoreError:
            logger.exception("Error deleting %s %s", self.entity, record_id)
            return False
        logger.info("Deleted %s %s", self.entity, record_id)
        return True


class CustomerRepository(Repository[Customer]):
    model = Customer
    collection = "customers"
    prefix = "cust"

    def find_by_phone(self, phone: str) -> Optional[Customer]:
        # phone is the lookup key but nothing enforces uniqueness; first match wins
        return next((c for c in self.list() if c.phone == phone), None)


class DeliveryPartnerRepository(Repository[DeliveryPartner]):
    model = DeliveryPartner
    collection = "delivery_partners"
    prefix = "dp"
    created_fields = ()


class OrderRepository(Repository[Order]):
    model = Order
    collection = "orders"
    prefix = "ord"
    updated_fields = ("updated_at",)

    def _resolve(self, doc: Document, record: Order) -> Order:
        return resolve_order(doc, record)


class InvoiceRepository(Repository[Invoice]):
    model = Invoice
    collection = "invoices"
    prefix = "inv"

    def _resolve(self, doc: Document, record: Invoice) -> Invoice:
        order = _find(doc.orders, record.order_id) or record.order
        return record.model_copy(update={"order": order})

    def update_status(self, invoice_id: str, status: InvoiceStatus) -> Optional[Invoice]:
        return self.update(invoice_id, {"status": status})

    def mark_sent(self, invoice_id: str) -> Optional[Invoice]:
        return self.update(invoice_id, {"is_sent": True, "sent_at": clock.now()})


class PaymentRepository(Repository[Payment]):
    model = Payment
    collection = "payments"
    prefix = "pay"
    created_fields = ()  # paid_at comes from the caller

    def list_for_order(self, order_id: str) -> list[Payment]:
        return [p for p in self.list() if p.order_id == order_id]


def resolve_order(doc: Document, order: Order) -> Order:
    """Swap the embedded snapshots for the live customer / partner when they exist."""
    customer = _find(doc.customers, order.customer_id) or order.customer
    partner = _find(doc.delivery_partners, order.delivery_partner_id) or order.delivery_partner
    return order.model_copy(update={"customer": customer, "delivery_partner": partner})
