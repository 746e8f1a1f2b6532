"""CSV export of repair tickets filtered by a day-granularity date range."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, tzinfo

from app.domain.entities.repair_ticket import RepairTicket
from app.domain.enums import ExportDateType
from app.domain.exceptions import ExportDatesMissingException, NoRecordsToExportException

CSV_HEADERS = (
    "Order Number",
    "Status",
    "Submitter Name",
    "Location",
    "Description",
    "Created Date",
    "Completed Date",
    "Cancelled Date",
    "Follow-up Actions",
)
CSV_DATE_FORMAT = "%Y-%m-%d %H:%M"
FOLLOW_UP_SEPARATOR = "; "
CSV_MEDIA_TYPE = "text/csv;charset=utf-8"

_END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class CsvExport:
    filename: str
    content: str
    row_count: int


def export_filename(date_type: ExportDateType, start_date: date, end_date: date) -> str:
    return f"repair-requests-{date_type.value}-{start_date.isoformat()}-to-{end_date.isoformat()}.csv"


def _in_range(value: datetime | None, start: datetime, end: datetime) -> bool:
    return value is not None and start <= value <= end


def ticket_in_range(
    ticket: RepairTicket,
    date_type: ExportDateType,
    start: datetime,
    end: datetime,
) -> bool:
    """ALL matches on any of the three dates; other types only on their own date."""
    if date_type is ExportDateType.ALL:
        return any(
            _in_range(d, start, end)
            for d in (ticket.created_at, ticket.completed_at, ticket.cancelled_at)
        )
    if date_type is ExportDateType.CREATED:
        return _in_range(ticket.created_at, start, end)
    if date_type is ExportDateType.COMPLETED:
        return _in_range(ticket.completed_at, start, end)
    return _in_range(ticket.cancelled_at, start, end)


def _format_date(value: datetime | None, tz: tzinfo) -> str:
    return value.astimezone(tz).strftime(CSV_DATE_FORMAT) if value else ""


def _row(ticket: RepairTicket, tz: tzinfo) -> list[str]:
    return [
        ticket.order_number,
        ticket.status.value,
        ticket.submitter_name or "",
        ticket.location or "",
        ticket.description or "",
        _format_date(ticket.created_at, tz),
        _format_date(ticket.completed_at, tz),
        _format_date(ticket.cancelled_at, tz),
        FOLLOW_UP_SEPARATOR.join(ticket.follow_up_actions),
    ]


def export_repairs_csv(
    repairs: Iterable[RepairTicket],
    start_date: date | None,
    end_date: date | None,
    date_type: ExportDateType = ExportDateType.ALL,
    tz: tzinfo = UTC,
) -> CsvExport:
    """Filter tickets by an inclusive day range and render them as CSV.

    The range runs from start_date 00:00:00.000 to end_date 23:59:59.999 in
    tz, which is also the zone the date columns are written in. Data fields
    are always double-quoted with embedded quotes doubled; rows end in "\\n".

    Raises:
        ExportDatesMissingException: start_date or end_date is missing.
        NoRecordsToExportException: No ticket falls in the range.
    """
    if start_date is None or end_date is None:
        raise ExportDatesMissingException()
    start = datetime.combine(start_date, time.min, tzinfo=tz)
    end = datetime.combine(end_date, _END_OF_DAY, tzinfo=tz)

    selected = [t for t in repairs if ticket_in_range(t, date_type, start, end)]
    if not selected:
        raise NoRecordsToExportException()

    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow(CSV_HEADERS)
    rows = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for ticket in selected:
        rows.writerow(_row(ticket, tz))
    return CsvExport(
        filename=export_filename(date_type, start_date, end_date),
        content=buf.getvalue()[:-1],
        row_count=len(selected),
    )
