"""
Boundaries to the collaborators that retrieve data from the revenue
authority's portal. Retry and timeout policy belongs to the implementations.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

import structlog

from ..config import get_settings
from ..ingestion.totals import parse_amount_string
from ..models import RawLedgerRow

logger = structlog.get_logger()


@runtime_checkable
class LedgerSource(Protocol):
    """Retrieves the raw tax payer ledger of an account."""

    async def fetch_ledger_rows(
        self,
        account: str,
        date_range: Tuple[Optional[date], date],
    ) -> Sequence[RawLedgerRow]:
        ...


@runtime_checkable
class ReceiptLookup(Protocol):
    """Retrieves liability amounts stated on acknowledgement of return receipts."""

    async def fetch_acknowledgement_receipt_amounts(
        self,
        tax_type_id: str,
        period_from: Optional[date],
        period_to: Optional[date],
        applied_date: Optional[date],
    ) -> Sequence[Union[Decimal, float, str]]:
        """
        Args:
            tax_type_id: Two-digit tax type code, e.g. '01'
            period_from: Start of the return's period
            period_to: End of the return's period
            applied_date: Date the return was filed

        Returns:
            Liability amounts in currency units (e.g. 1234.56), one per
            matching receipt
        """
        ...


class ReceiptLookupCache:
    """
    Per-run cache of receipt lookups keyed by the return's serial number.

    Concurrent requests for the same return share a single call. Calls for
    distinct returns run concurrently up to max_concurrent at a time.
    Amounts are converted from currency units to ledger minor units.
    """

    def __init__(
        self,
        lookup: Optional[ReceiptLookup],
        max_concurrent: Optional[int] = None,
        amount_scale: Optional[int] = None,
    ):
        settings = get_settings()
        self.lookup = lookup
        self.max_concurrent = (
            settings.max_concurrent_receipt_lookups if max_concurrent is None else max_concurrent
        )
        self.amount_scale = settings.amount_scale if amount_scale is None else amount_scale
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._tasks: Dict[str, "asyncio.Future[List[int]]"] = {}

    @property
    def available(self) -> bool:
        return self.lookup is not None

    @property
    def calls(self) -> int:
        """Number of distinct lookups issued."""
        return len(self._tasks)

    async def get_amounts(
        self,
        sr_no: str,
        tax_type_id: str,
        period_from: Optional[date],
        period_to: Optional[date],
        applied_date: Optional[date],
    ) -> List[int]:
        """Fetch (or reuse) the receipt amounts for a return. Lookup errors propagate."""
        if self.lookup is None:
            raise RuntimeError("No receipt lookup configured")

        task = self._tasks.get(sr_no)
        if task is None:
            task = asyncio.ensure_future(
                self._fetch(sr_no, tax_type_id, period_from, period_to, applied_date)
            )
            self._tasks[sr_no] = task
        return await task

    async def _fetch(
        self,
        sr_no: str,
        tax_type_id: str,
        period_from: Optional[date],
        period_to: Optional[date],
        applied_date: Optional[date],
    ) -> List[int]:
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
        async with self._semaphore:
            logger.debug("Fetching acknowledgement receipts", sr_no=sr_no, tax_type_id=tax_type_id)
            amounts = await self.lookup.fetch_acknowledgement_receipt_amounts(
                tax_type_id, period_from, period_to, applied_date,
            )
        return self._to_minor_units(amounts or [])

    def _to_minor_units(self, amounts: Sequence[Union[Decimal, float, str]]) -> List[int]:
        """Parse amounts the way ledger amounts are parsed; empty ones are dropped."""
        parsed = (
            parse_amount_string(None if amount is None else str(amount), scale=self.amount_scale)
            for amount in amounts
        )
        return [amount for amount in parsed if amount is not None]
