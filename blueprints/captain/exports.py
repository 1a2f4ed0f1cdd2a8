"""Booking export route (Excel download of the filtered booking list)."""

import io

from flask import request, Response
from flask_login import login_required, current_user
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side

from blueprints.captain.bookings import parse_list_filters
from models.booking import get_bookings_for_export
from models.captain import get_captain_profile
from models.errors import BookingError
from utils.api_response import api_booking_error
from utils.datetime_helpers import get_timezone, to_local, utc_now

EXPORT_COLUMNS = [
    # (header, width)
    ('Date', 12),
    ('Start', 10),
    ('End', 10),
    ('Guest', 24),
    ('Email', 28),
    ('Phone', 16),
    ('Party', 8),
    ('Vessel', 18),
    ('Trip', 20),
    ('Status', 16),
    ('Payment', 16),
    ('Total', 10),
    ('Balance', 10),
    ('Tags', 20),
]


def register_routes(bp):
    """Register export routes on the blueprint."""

    @bp.route('/bookings/export')
    @login_required
    def export_bookings():
        """
        Download the filtered booking list as .xlsx.

        Accepts the same filter query params as the booking list.
        """
        try:
            bookings = get_bookings_for_export(
                current_user.id,
                sort_field=request.args.get('sortField', 'scheduled_start'),
                sort_dir=request.args.get('sortDir', 'asc'),
                **parse_list_filters(request.args)
            )
        except BookingError as e:
            return api_booking_error(e)

        profile = get_captain_profile(current_user.id)
        return build_bookings_workbook_response(bookings, profile)


def build_bookings_workbook_response(bookings: list, profile: dict) -> Response:
    """
    Render bookings into a workbook, times in the captain's timezone.

    Args:
        bookings: Booking dicts from get_bookings_for_export
        profile: Captain profile (timezone, business name)

    Returns:
        Response: Excel file download response
    """
    tz = get_timezone(profile.get('timezone') if profile else None)

    wb = Workbook()
    ws = wb.active
    ws.title = "Bookings"

    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_fill = PatternFill(start_color="0B3D5C", end_color="0B3D5C", fill_type="solid")
    thin_border = Border(
        left=Side(style='thin', color="D4D4D4"),
        right=Side(style='thin', color="D4D4D4"),
        top=Side(style='thin', color="D4D4D4"),
        bottom=Side(style='thin', color="D4D4D4")
    )
    alt_fill = PatternFill(start_color="F2F6F9", end_color="F2F6F9", fill_type="solid")

    # Title row
    title = f"Bookings - {(profile or {}).get('business_name') or 'DockSlot'}"
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(EXPORT_COLUMNS))
    title_cell = ws.cell(row=1, column=1, value=title)
    title_cell.font = Font(bold=True, size=14, color="0B3D5C")
    title_cell.alignment = Alignment(horizontal="center", vertical="center")

    ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=len(EXPORT_COLUMNS))
    subtitle = ws.cell(row=2, column=1, value=f"Total: {len(bookings)} bookings | Times in {tz.key}")
    subtitle.font = Font(size=10, color="666666")
    subtitle.alignment = Alignment(horizontal="center")

    header_row = 4
    for col, (header, width) in enumerate(EXPORT_COLUMNS, 1):
        cell = ws.cell(row=header_row, column=col, value=header)
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
        cell.border = thin_border
        ws.column_dimensions[cell.column_letter].width = width
    ws.freeze_panes = f'A{header_row + 1}'

    for row_idx, booking in enumerate(bookings, header_row + 1):
        start = to_local(booking['scheduled_start'], tz)
        end = to_local(booking['scheduled_end'], tz)
        values = [
            start.strftime('%Y-%m-%d'),
            start.strftime('%H:%M'),
            end.strftime('%H:%M'),
            booking['guest_name'],
            booking['guest_email'],
            booking['guest_phone'] or '-',
            booking['party_size'],
            (booking['vessel'] or {}).get('name') or '-',
            (booking['trip_type'] or {}).get('title') or '-',
            booking['status'],
            booking['payment_status'],
            booking['total_price_cents'] / 100,
            booking['balance_due_cents'] / 100,
            ', '.join(booking['tags']) or '-',
        ]
        is_alt = (row_idx - header_row) % 2 == 0
        for col, value in enumerate(values, 1):
            cell = ws.cell(row=row_idx, column=col, value=value)
            cell.border = thin_border
            if is_alt:
                cell.fill = alt_fill
        for col in (12, 13):
            ws.cell(row=row_idx, column=col).number_format = '#,##0.00'

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)

    filename = f"bookings_{utc_now().astimezone(tz).strftime('%Y-%m-%d')}.xlsx"
    return Response(
        output.getvalue(),
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )
