"""Read-side aggregations over a window of stored events.

Negative defect counts mark unknown defects: such records count as events
but contribute nothing to defect sums.
"""
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable
from ..event_models import CamelModel, EventRecord

HEALTHY = "Healthy"
WARNING = "Warning"
# Defects per hour at or above which a machine is flagged
WARNING_RATE = 2.0

DEFAULT_TOP_LINES_LIMIT = 10


class StatsResult(CamelModel):
    machine_id: str
    start: str
    end: str
    events_count: int
    defects_count: int
    avg_defect_rate: float
    status: str


class LineResult(CamelModel):
    line_id: str
    event_count: int
    total_defects: int
    defects_percent: float


def known_defects(records: Iterable[EventRecord]) -> int:
    return sum(r.defect_count for r in records if r.defect_count >= 0)


def defect_rate(defects: int, start: datetime, end: datetime) -> float:
    """Defects per hour of the window; 0.0 for an empty or inverted window."""
    hours = (end - start).total_seconds() / 3600.0
    if hours <= 0:
        return 0.0
    return defects / hours


def round_percent(total_defects: int, event_count: int) -> float:
    """Defects per hundred events, rounded half-up to two decimals."""
    if event_count == 0:
        return 0.0
    exact = Decimal(total_defects * 100) / Decimal(event_count)
    return float(exact.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def machine_stats(
    records: list[EventRecord],
    machine_id: str,
    start: datetime,
    end: datetime,
    start_label: str | None = None,
    end_label: str | None = None,
) -> StatsResult:
    """
    Health statistics for one machine over ``[start, end]``.

    Args:
        records: Records of the machine inside the window
        machine_id: Machine the records belong to
        start: Window start
        end: Window end
        start_label: Caller's spelling of ``start`` to echo back
        end_label: Caller's spelling of ``end`` to echo back
    """
    defects = known_defects(records)
    rate = defect_rate(defects, start, end)
    return StatsResult(
        machine_id=machine_id,
        start=start_label if start_label is not None else start.isoformat(),
        end=end_label if end_label is not None else end.isoformat(),
        events_count=len(records),
        defects_count=defects,
        avg_defect_rate=rate,
        status=HEALTHY if rate < WARNING_RATE else WARNING,
    )


def top_defect_lines(records: Iterable[EventRecord], limit: int = DEFAULT_TOP_LINES_LIMIT) -> list[LineResult]:
    """
    Rank production lines by known defects, most defects first.

    Lines with equal totals are ordered by line id.
    """
    by_line: dict[str, list[EventRecord]] = defaultdict(list)
    for record in records:
        by_line[record.line_id].append(record)

    lines = []
    for line_id, line_records in by_line.items():
        total = known_defects(line_records)
        lines.append(
            LineResult(
                line_id=line_id,
                event_count=len(line_records),
                total_defects=total,
                defects_percent=round_percent(total, len(line_records)),
            )
        )

    lines.sort(key=lambda line: (-line.total_defects, line.line_id))
    return lines[:max(limit, 0)]
