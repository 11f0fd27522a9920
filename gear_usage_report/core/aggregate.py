"""
Per-user usage accumulation.

Clips each usage record to the report window and buckets the elapsed time
by calendar month and usage category.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import DefaultDict, Dict, Iterable, Mapping, Optional, Tuple

from gear_usage_report.storage.models import UsageRecord, UsageType, UserAccount

from .elapsed import MonthTable, add_elapsed_time
from .timewindow import TimeWindow

logger = logging.getLogger(__name__)

UNKNOWN_QUALIFIER = "unknown"


@dataclass
class UsageAccumulator:
    """Elapsed usage for one user over one report run."""
    user_id: str
    plan_id: Optional[str] = None
    gears: DefaultDict[str, MonthTable] = field(default_factory=lambda: defaultdict(dict))
    carts: DefaultDict[str, MonthTable] = field(default_factory=lambda: defaultdict(dict))
    addtl_fs_gb_seconds: int = 0


def clip_to_window(
    record: UsageRecord,
    window: TimeWindow,
    now: datetime
) -> Optional[Tuple[datetime, datetime]]:
    """Interval of ``record`` that falls inside ``window``.

    Open records run until ``now``. Returns None when nothing overlaps.
    """
    end_time = record.end_time if record.end_time is not None else now
    begin = max(record.begin_time, window.start)
    end = min(end_time, window.end, now)
    if end <= begin:
        return None
    return begin, end


def record_elapsed(record: UsageRecord, window: TimeWindow, now: datetime) -> int:
    """Seconds of ``record`` inside ``window``, 0 when it does not overlap."""
    interval = clip_to_window(record, window, now)
    if interval is None:
        return 0
    begin, end = interval
    return int((end - begin).total_seconds())


def accumulate_usage(
    records: Iterable[UsageRecord],
    accounts: Mapping[str, UserAccount],
    window: TimeWindow,
    now: datetime
) -> Dict[str, UsageAccumulator]:
    """Build per-user accumulators from usage records.

    Args:
        records: Usage records for the matched accounts
        accounts: Matched accounts keyed by account id
        window: Report window
        now: Current UTC time, caps open ended records

    Returns:
        Accumulators keyed by user id, one per matched account
    """
    accumulators = {
        user_id: UsageAccumulator(user_id=user_id, plan_id=account.plan_id)
        for user_id, account in accounts.items()
    }

    for record in records:
        accumulator = accumulators.get(record.user_id)
        if accumulator is None:
            logger.debug("Skipping record for unmatched user %s", record.user_id)
            continue

        interval = clip_to_window(record, window, now)
        if interval is None:
            continue
        begin, end = interval

        # records without a size or cart name are reported under "unknown"
        if record.usage_type == UsageType.GEAR_USAGE:
            table = accumulator.gears[record.gear_size or UNKNOWN_QUALIFIER]
            add_elapsed_time(table, begin, end, now)
        elif record.usage_type == UsageType.PREMIUM_CART:
            table = accumulator.carts[record.cart_name or UNKNOWN_QUALIFIER]
            add_elapsed_time(table, begin, end, now)
        elif record.usage_type == UsageType.ADDTL_FS_GB:
            seconds = int((end - begin).total_seconds())
            accumulator.addtl_fs_gb_seconds += seconds * (record.addtl_fs_gb or 0)

    return accumulators
