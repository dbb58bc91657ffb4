"""
On-demand summary over every persisted transaction.

A full scan by design: count the records and add their amounts with
``Decimal`` arithmetic. All currencies land in one bucket labelled with the
configured currency; no conversion takes place.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, Inexact, localcontext
from typing import Callable

from payments import config
from payments.database import TransactionStore
from payments.models import TransactionSummary

logger = logging.getLogger("summary")

ZERO_VOLUME = Decimal("0.00")


def exact_sum(amounts: list[Decimal]) -> Decimal:
    """Add *amounts* without rounding, whatever their size or scale.

    The working precision covers the widest span between the most and least
    significant digit of the operands plus room for carries; ``Inexact`` is
    trapped so a miscount raises instead of rounding.
    """
    values = [ZERO_VOLUME, *amounts]
    top = max(v.adjusted() for v in values)
    bottom = min(v.as_tuple().exponent for v in values)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, top - bottom + len(str(len(values))) + 1)
        ctx.traps[Inexact] = True
        return sum(amounts, ZERO_VOLUME)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SummaryAggregator:
    def __init__(
        self,
        store: TransactionStore,
        currency: str = config.SUMMARY_CURRENCY,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.currency = currency
        self.clock = clock

    async def summarize(self) -> TransactionSummary:
        """Aggregate all records visible now.

        ``StorageFailure`` from the store propagates; an unreadable store is
        never reported as an empty summary.
        """
        records = await self.store.find_all()
        total = exact_sum([r.amount for r in records])
        logger.debug("Summarised %d transactions (total %s)", len(records), total)
        return TransactionSummary(
            currency=self.currency,
            transaction_count=len(records),
            total_volume=total,
            last_updated=self.clock(),
        )
