import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from parkdesk.dependencies.deps import console_response, get_console
from parkdesk.schema.filter_schema import BillingFilter
from parkdesk.schema.form_schema import PaymentStatusUpdate
from parkdesk.service.console import Console
from parkdesk.utils.common import format_currency
from parkdesk.utils.enum import RevenuePeriod

logger = logging.getLogger(__name__)

billing_router = APIRouter()


def _dump(value):
    if value is None:
        return None
    if isinstance(value, list):
        return [item.model_dump(mode="json") for item in value]
    return value.model_dump(mode="json")


@billing_router.get("/v1/billing")
async def get_billing_records(filters: Annotated[BillingFilter, Query()], console: Console = Depends(get_console)):
    ok = await console.billing.load_records(filters)
    return console_response(console, ok, "Billing records", console.billing.snapshot())


@billing_router.patch("/v1/billing/{billing_id}/payment")
async def update_payment_status(billing_id: str, payment: PaymentStatusUpdate,
                                console: Console = Depends(get_console)):
    ok = await console.billing.set_payment_status(billing_id, payment.is_paid)
    return console_response(console, ok, "Payment status updated", console.billing.snapshot())


@billing_router.get("/v1/billing/statistics")
async def get_billing_statistics(console: Console = Depends(get_console)):
    statistics = await console.billing.statistics()
    data = _dump(statistics)
    if statistics is not None:
        data["total_revenue_label"] = format_currency(statistics.total_revenue)
    return console_response(console, statistics is not None, "Billing statistics", data)


@billing_router.get("/v1/billing/unpaid")
async def get_unpaid_bills(console: Console = Depends(get_console)):
    unpaid = await console.billing.unpaid()
    data = _dump(unpaid)
    if unpaid is not None:
        data["total_unpaid_label"] = format_currency(unpaid.total_unpaid_amount)
    return console_response(console, unpaid is not None, "Unpaid bills", data)


@billing_router.get("/v1/billing/revenue-trends")
async def get_revenue_trends(period: RevenuePeriod = RevenuePeriod.DAY, limit: int = Query(30, ge=1, le=365),
                             console: Console = Depends(get_console)):
    trends = await console.billing.revenue_trends(period, limit)
    return console_response(console, trends is not None, "Revenue trends", _dump(trends))


@billing_router.get("/v1/billing/peak-hours")
async def get_peak_hours(date: Optional[str] = None, console: Console = Depends(get_console)):
    peak_hours = await console.billing.peak_hours(date)
    return console_response(console, peak_hours is not None, "Peak hour analysis", _dump(peak_hours))


@billing_router.get("/v1/billing/pricing-config")
async def get_pricing_config(console: Console = Depends(get_console)):
    pricing = await console.billing.pricing_config()
    return console_response(console, pricing is not None, "Pricing config", _dump(pricing))


@billing_router.get("/v1/billing/{billing_id}")
async def get_billing_record(billing_id: str, console: Console = Depends(get_console)):
    record = await console.billing.record(billing_id)
    data = console.billing.record_row(record) if record is not None else None
    return console_response(console, record is not None, "Billing record", data)
