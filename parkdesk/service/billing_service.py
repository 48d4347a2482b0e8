import logging
from typing import List, Optional

from parkdesk.schema.billing_schema import (BillingRecord, BillingStatistics, PeakHourData, PricingConfig,
                                            RevenueOverTime, UnpaidBillsSummary)
from parkdesk.schema.filter_schema import BillingFilter
from parkdesk.service.notice_board import NoticeBoard
from parkdesk.service.parking_api import ParkingApiClient
from parkdesk.utils.common import format_currency, format_hours
from parkdesk.utils.enum import RevenuePeriod
from parkdesk.utils.errors import ParkingApiError

logger = logging.getLogger(__name__)


class BillingDesk:
    """Billing records, payment status and the revenue reports."""

    def __init__(self, api: ParkingApiClient, notices: NoticeBoard):
        self.api = api
        self.notices = notices

        self.records: List[BillingRecord] = []
        self.filters = BillingFilter()
        self.is_loading = False
        self._updating = set()

    def is_updating(self, billing_id: str) -> bool:
        return billing_id in self._updating

    async def load_records(self, filters: Optional[BillingFilter] = None) -> bool:
        if filters is not None:
            self.filters = filters

        self.is_loading = True
        try:
            self.records = await self.api.get_billing_records(self.filters)
            logger.debug(f"Loaded {len(self.records)} billing records")
            return True
        except ParkingApiError as e:
            logger.error(f"Error fetching billing records: {e.message}")
            self.notices.error(e.message)
            return False
        finally:
            self.is_loading = False

    async def set_payment_status(self, billing_id: str, is_paid: bool) -> bool:
        if billing_id in self._updating:
            self.notices.warning("Payment status is already being updated for this bill")
            return False

        self._updating.add(billing_id)
        try:
            try:
                await self.api.update_payment_status(billing_id, is_paid)
            except ParkingApiError as e:
                logger.error(f"Error updating payment status for {billing_id}: {e.message}")
                self.notices.error(e.message)
                return False

            self.notices.success(f"Bill marked as {'paid' if is_paid else 'unpaid'}")
            await self.load_records()
            return True
        finally:
            self._updating.discard(billing_id)

    async def record(self, billing_id: str) -> Optional[BillingRecord]:
        return await self._fetch(self.api.get_billing_by_id(billing_id), f"billing record {billing_id}")

    async def statistics(self) -> Optional[BillingStatistics]:
        return await self._fetch(self.api.get_billing_statistics(), "billing statistics")

    async def unpaid(self) -> Optional[UnpaidBillsSummary]:
        return await self._fetch(self.api.get_unpaid_bills(), "unpaid bills")

    async def revenue_trends(self, period: RevenuePeriod = RevenuePeriod.DAY,
                             limit: int = 30) -> Optional[List[RevenueOverTime]]:
        return await self._fetch(self.api.get_revenue_over_time(period, limit), "revenue trends")

    async def peak_hours(self, date: Optional[str] = None) -> Optional[List[PeakHourData]]:
        return await self._fetch(self.api.get_peak_hours(date), "peak hour analysis")

    async def pricing_config(self) -> Optional[PricingConfig]:
        return await self._fetch(self.api.get_pricing_config(), "pricing config")

    def snapshot(self) -> dict:
        return {
            "is_loading": self.is_loading,
            "filters": self.filters.model_dump(mode="json", exclude_none=True),
            "records": [self.record_row(record) for record in self.records],
        }

    def record_row(self, record: BillingRecord) -> dict:
        row = record.model_dump(mode="json", exclude={"session"})
        row["amount_label"] = format_currency(record.amount)
        row["is_updating"] = self.is_updating(record.id)
        session = record.session
        if session is not None:
            row["number_plate"] = session.number_plate
            row["slot_location"] = session.slot.location if session.slot else None
            if session.exit_time is not None:
                hours = (session.exit_time - session.entry_time).total_seconds() / 3600
                row["duration"] = format_hours(hours)
        return row

    async def _fetch(self, request, label: str):
        try:
            return await request
        except ParkingApiError as e:
            logger.error(f"Error fetching {label}: {e.message}")
            self.notices.error(e.message)
            return None
