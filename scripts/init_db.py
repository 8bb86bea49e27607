"""
Database initialiser.

Writes the seeded default document (three delivery partners, everything
else empty). With ``--demo`` it also generates a deterministic set of
sample data over the last 30 days:
  - 12 customers across 6 cities
  - 60 orders, 1-4 items each, mix of seeded and ad-hoc partners
  - invoices for ~60 % of the orders (~half of them flagged as sent)
  - payments for ~70 % of the orders
"""

import argparse
import random
import sys
from datetime import datetime, timedelta

from billing import clock
from billing.config import get_settings
from billing.models import (
    Customer,
    DeliveryPartner,
    Invoice,
    InvoiceStatus,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentMethod,
    calculate_total,
)
from billing.sequences import invoice_number_for, order_number_for
from billing.store import JsonStore, default_document

SEED = 42
DAYS = 30

CITIES = ["Bengaluru", "Mysuru", "Mangaluru", "Hubballi", "Belagavi", "Udupi"]
NAMES = [
    "Asha Rao", "Vikram Shetty", "Meera Iyer", "Rahul Nayak", "Divya Kamath",
    "Arjun Hegde", "Kavya Pai", "Nikhil Bhat", "Sneha Kulkarni", "Rohan Gowda",
    "Pooja Naik", "Suresh Patil",
]
PRODUCTS = [
    ("Groceries", 50, 800), ("Medicines", 100, 1500), ("Electronics", 500, 5000),
    ("Stationery", 20, 300), ("Clothing", 300, 2500), ("Bakery", 40, 400),
]


def _rand_dt(rng: random.Random, lo: datetime, hi: datetime) -> datetime:
    secs = rng.randint(0, int((hi - lo).total_seconds()))
    return lo + timedelta(seconds=secs)


def seed(store: JsonStore, demo: bool = False) -> None:
    doc = default_document()
    if not demo:
        store.save(doc)
        return

    rng = random.Random(SEED)
    end = clock.now()
    start = end - timedelta(days=DAYS)

    counter = 0

    def next_id(prefix: str) -> str:
        nonlocal counter
        counter += 1
        return f"{prefix}_demo{counter:04d}"

    # ── customers ────────────────────────────────────────────────────────────
    for i, name in enumerate(NAMES):
        doc.customers.append(Customer(
            id=next_id("cust"),
            name=name,
            phone=f"98450{i:05d}",
            address=f"{rng.randint(1, 200)}, {rng.choice(['MG Road', 'Main Street', 'Temple Road'])}",
            city=rng.choice(CITIES),
            created_at=start,
        ))

    # ── orders (numbered in creation order so the daily sequences hold) ──────
    stamps = sorted(_rand_dt(rng, start, end) for _ in range(60))
    for created_at in stamps:
        customer = rng.choice(doc.customers)
        if rng.random() < 0.8:
            partner = rng.choice(doc.delivery_partners)
        else:
            partner = DeliveryPartner(id=next_id("dp"), name="Local Courier", charges=rng.choice([50, 60, 70]))

        items = []
        for _ in range(rng.randint(1, 4)):
            name, lo, hi = rng.choice(PRODUCTS)
            items.append(OrderItem(
                id=next_id("item"),
                name=name,
                quantity=rng.randint(1, 3),
                price=float(rng.randrange(lo, hi, 10)),
            ))
        service_fee = float(rng.choice([0, 50, 100, 200]))

        doc.orders.append(Order(
            id=order_number_for(doc, created_at),
            customer_id=customer.id,
            customer=customer,
            items=items,
            delivery_partner_id=partner.id,
            delivery_partner=partner,
            service_fee=service_fee,
            gst=0,
            total_amount=calculate_total(items, partner.charges, service_fee),
            status=rng.choice(list(OrderStatus)),
            payment_method=rng.choice(list(PaymentMethod)),
            created_at=created_at,
            updated_at=created_at,
        ))

    # ── invoices ─────────────────────────────────────────────────────────────
    for order in doc.orders:
        if rng.random() >= 0.6:
            continue
        issued = min(end, order.created_at + timedelta(hours=rng.randint(0, 12)))
        invoice_id = next_id("inv")
        doc.invoices.append(Invoice(
            id=invoice_id,
            order_id=order.id,
            order=order,
            invoice_number=invoice_number_for(doc, issued),
            issued_date=issued,
            due_date=issued + timedelta(days=7),
            pdf_url=f"/api/v1/invoices/{invoice_id}/download",
            is_sent=rng.random() < 0.5,
            status=rng.choice(list(InvoiceStatus)),
            created_at=issued,
        ))

    # ── payments ─────────────────────────────────────────────────────────────
    for order in doc.orders:
        if rng.random() >= 0.7:
            continue
        doc.payments.append(Payment(
            id=next_id("pay"),
            order_id=order.id,
            amount=order.total_amount,
            method=order.payment_method,
            transaction_id=None if order.payment_method == PaymentMethod.CASH else f"TXN{rng.randint(10**9, 10**10 - 1)}",
            paid_at=min(end, order.created_at + timedelta(hours=rng.randint(1, 48))),
        ))

    store.save(doc)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Initialise the billing database")
    parser.add_argument("--path", default=get_settings().db_path)
    parser.add_argument("--demo", action="store_true", help="generate sample data")
    parser.add_argument("--force", action="store_true", help="overwrite an existing database")
    args = parser.parse_args(argv)

    store = JsonStore(args.path)
    if store.exists() and not args.force:
        print(f"Database already exists at {args.path}. Skipping initialization.")
        return 0
    seed(store, demo=args.demo)
    print(f"Database initialized at {args.path}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
