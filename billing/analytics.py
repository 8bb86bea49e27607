import calendar
import logging
import math
from datetime import datetime, timedelta
from typing import Optional

from billing import clock
from billing.models import (
    Analytics,
    CityOrders,
    Document,
    PaymentBreakdown,
    PaymentMethod,
    Revenue,
    TopCustomer,
)
from billing.store import JsonStore, StoreError

logger = logging.getLogger(__name__)

TOP_N = 5


def _start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def _one_month_before(moment: datetime) -> datetime:
    # calendar month, day clamped to the end of the shorter month
    year, month = moment.year, moment.month - 1
    if month == 0:
        year, month = year - 1, 12
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _percent(count: int, total: int) -> int:
    if total == 0:
        return 0
    # round half up
    return math.floor(count * 100 / total + 0.5)


def compute_analytics(doc: Document, now: Optional[datetime] = None) -> Analytics:
    now = now or clock.now()
    customers = {c.id: c for c in reversed(doc.customers)}  # first record wins

    # ── 1. Revenue windows, each anchored independently at "now" ─────────────
    today = _start_of_day(now)
    week_ago = _start_of_day(now - timedelta(days=7))
    month_ago = _start_of_day(_one_month_before(now))

    def revenue_since(start: datetime) -> float:
        return sum(
            (o.total_amount for o in doc.orders if clock.to_local(o.created_at) >= start),
            0.0,
        )

    revenue = Revenue(
        today=revenue_since(today),
        week=revenue_since(week_ago),
        month=revenue_since(month_ago),
    )

    # ── 2. Service fees over all time ────────────────────────────────────────
    service_fees = sum((o.service_fee for o in doc.orders), 0.0)

    # ── 3. Orders per city (customers that no longer resolve are skipped) ────
    city_counts: dict[str, int] = {}
    for order in doc.orders:
        customer = customers.get(order.customer_id)
        if customer is not None:
            city_counts[customer.city] = city_counts.get(customer.city, 0) + 1

    city_wise = sorted(
        (CityOrders(city=city, count=count) for city, count in city_counts.items()),
        key=lambda c: c.count,
        reverse=True,
    )[:TOP_N]

    # ── 4. Top customers by spend ────────────────────────────────────────────
    spend: dict[str, list] = {}
    for order in doc.orders:
        stats = spend.setdefault(order.customer_id, [0, 0.0])
        stats[0] += 1
        stats[1] += order.total_amount

    top_customers = sorted(
        (
            TopCustomer(customer=customers[cid], order_count=count, total_spent=total)
            for cid, (count, total) in spend.items()
            if cid in customers
        ),
        key=lambda t: t.total_spent,
        reverse=True,
    )[:TOP_N]

    # ── 5. Invoices not yet flagged as sent ──────────────────────────────────
    pending = sum(1 for i in doc.invoices if not i.is_sent)

    # ── 6. Payment method share, by payment record ───────────────────────────
    method_counts = {m: 0 for m in PaymentMethod}
    for payment in doc.payments:
        method_counts[payment.method] += 1
    total_payments = sum(method_counts.values())

    breakdown = PaymentBreakdown(
        UPI=_percent(method_counts[PaymentMethod.UPI], total_payments),
        Cash=_percent(method_counts[PaymentMethod.CASH], total_payments),
        Online=_percent(method_counts[PaymentMethod.ONLINE], total_payments),
    )

    return Analytics(
        revenue=revenue,
        service_fee_collection=service_fees,
        city_wise_orders=city_wise,
        top_customers=top_customers,
        pending_invoices=pending,
        payment_breakdown=breakdown,
    )


def get_analytics(store: JsonStore, now: Optional[datetime] = None) -> Analytics:
    try:
        doc = store.load()
    except StoreError:
        logger.exception("Error fetching analytics data")
        return Analytics()
    return compute_analytics(doc, now)
