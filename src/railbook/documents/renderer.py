from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Any

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.pdfgen import canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from railbook.models.booking import BookingSnapshot

logger = logging.getLogger(__name__)

ISSUER = "PT KERETA API INDONESIA"
DISCLAIMER_LINES = (
    "Tiket harus dibawa saat check-in",
    "Datang minimal 1 jam sebelum keberangkatan",
    "E-tiket ini sah dan berlaku sebagai tiket resmi",
)

_KEY_VALUE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (0, -1), colors.lightgrey),
        ("TEXTCOLOR", (0, 0), (-1, -1), colors.black),
        ("ALIGN", (0, 0), (-1, -1), "LEFT"),
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 10),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
    ]
)

_GRID_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
        ("BACKGROUND", (0, 1), (-1, -1), colors.beige),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
    ]
)


@dataclass
class RenderedDocument:
    content: bytes
    layout: str


def format_rupiah(amount: Decimal | float | int | None) -> str:
    value = int(Decimal(str(amount or 0)))
    return "Rp " + f"{value:,}".replace(",", ".")


def _format_date(value: str | None) -> str:
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return value


def _route_text(snapshot: BookingSnapshot) -> str:
    return f"{snapshot.origin or '-'} - {snapshot.destination or '-'}"


def _key_value_table(rows: list[list[str]]) -> Table:
    table = Table(rows, colWidths=[140, 320])
    table.setStyle(_KEY_VALUE_STYLE)
    return table


def _grid_table(rows: list[list[Any]], col_widths: list[int]) -> Table:
    table = Table(rows, colWidths=col_widths)
    table.setStyle(_GRID_STYLE)
    return table


def _booking_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    rows = [
        ["Kode Booking", snapshot.booking_code],
        ["Order ID", snapshot.order_id],
        ["Tanggal Pemesanan", _format_date(snapshot.created_at)],
        ["Pemesan", snapshot.customer_name],
    ]
    if snapshot.customer_email:
        rows.append(["Email", snapshot.customer_email])
    if snapshot.customer_phone:
        rows.append(["Telepon", snapshot.customer_phone])
    rows.append(["Status", snapshot.status])
    return rows


def _travel_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    candidates = [
        ("Kereta", snapshot.train_name),
        ("Kelas", snapshot.train_type),
        ("Kode Kereta", snapshot.train_code),
        ("Rute", _route_text(snapshot) if snapshot.origin or snapshot.destination else None),
        ("Tanggal", _format_date(snapshot.departure_date) if snapshot.departure_date else None),
        ("Berangkat", snapshot.departure_time),
        ("Tiba", snapshot.arrival_time),
    ]
    rows = [[label, str(value)] for label, value in candidates if value]
    if snapshot.transit and snapshot.transit.station:
        transit = snapshot.transit
        rows.append(["Transit", f"{transit.station} ({transit.arrival or '-'} - {transit.departure or '-'})"])
    return rows


def _segment_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    rows = [["No", "Kereta", "Dari", "Ke", "Berangkat", "Tiba"]]
    for index, segment in enumerate(snapshot.segments, start=1):
        rows.append(
            [
                str(segment.segment_order or index),
                segment.train_name or "-",
                segment.origin or "-",
                segment.destination or "-",
                segment.departure_time or "-",
                segment.arrival_time or "-",
            ]
        )
    return rows


def _passenger_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    rows = [["No", "Nama", "NIK", "Kursi"]]
    for index, passenger in enumerate(snapshot.passengers, start=1):
        seat = passenger.seat_number
        if seat and passenger.wagon_number:
            seat = f"{passenger.wagon_number}/{seat}"
        rows.append([str(index), passenger.full_name, passenger.id_number or "-", seat or "-"])
    return rows


def _seat_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    rows = [["Kursi", "Gerbong", "Kelas", "Harga"]]
    for seat in snapshot.seats:
        rows.append(
            [
                seat.seat_number,
                seat.wagon_number or "-",
                seat.wagon_class or "-",
                format_rupiah(seat.price) if seat.price is not None else "-",
            ]
        )
    return rows


def _payment_rows(snapshot: BookingSnapshot) -> list[list[str]]:
    fare = snapshot.fare_breakdown
    rows: list[list[str]] = []
    if fare is not None:
        terms = [
            ("Harga Tiket", fare.base_fare, 1),
            ("Premium Kursi", fare.seat_premium, 1),
            ("Biaya Transit", fare.transit_additional, 1),
            ("Diskon Transit", fare.transit_discount, -1),
            ("Diskon Promo", fare.promo_discount, -1),
            ("Biaya Admin", fare.admin_fee, 1),
            ("Asuransi", fare.insurance_fee, 1),
            ("Biaya Pembayaran", fare.payment_fee, 1),
        ]
        for label, amount, sign in terms:
            if amount:
                prefix = "- " if sign < 0 else ""
                rows.append([label, prefix + format_rupiah(amount)])
    if snapshot.payment_method:
        rows.append(["Metode Pembayaran", snapshot.payment_method])
    rows.append(["Total", format_rupiah(snapshot.total_amount)])
    return rows


def _build_story(snapshot: BookingSnapshot) -> list[Any]:
    styles = getSampleStyleSheet()
    story: list[Any] = [
        Paragraph(ISSUER, styles["Title"]),
        Paragraph("E-TIKET KERETA API", styles["Heading2"]),
        Spacer(1, 12),
        _key_value_table(_booking_rows(snapshot)),
        Spacer(1, 12),
    ]

    travel = _travel_rows(snapshot)
    if travel:
        story += [Paragraph("Informasi Perjalanan", styles["Heading3"]), _key_value_table(travel), Spacer(1, 12)]
    if snapshot.segments:
        story += [
            Paragraph("Segmen Perjalanan", styles["Heading3"]),
            _grid_table(_segment_rows(snapshot), [30, 120, 90, 90, 70, 60]),
            Spacer(1, 12),
        ]
    if snapshot.passengers:
        story += [
            Paragraph("Data Penumpang", styles["Heading3"]),
            _grid_table(_passenger_rows(snapshot), [30, 200, 140, 90]),
            Spacer(1, 12),
        ]
    if snapshot.seats:
        story += [
            Paragraph("Kursi", styles["Heading3"]),
            _grid_table(_seat_rows(snapshot), [90, 90, 140, 140]),
            Spacer(1, 12),
        ]
    story += [Paragraph("Rincian Pembayaran", styles["Heading3"]), _key_value_table(_payment_rows(snapshot))]
    story.append(Spacer(1, 16))
    for line in DISCLAIMER_LINES:
        story.append(Paragraph(f"&bull; {line}", styles["Normal"]))
    story.append(Spacer(1, 16))
    qr_placeholder = Table([[f"QR: {snapshot.booking_code}"]], colWidths=[120], rowHeights=[120])
    qr_placeholder.setStyle(
        TableStyle(
            [
                ("BOX", (0, 0), (-1, -1), 1, colors.black),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("FONTSIZE", (0, 0), (-1, -1), 7),
            ]
        )
    )
    story.append(qr_placeholder)
    return story


def render_full(snapshot: BookingSnapshot) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"E-Ticket {snapshot.booking_code}", author="Railbook")
    doc.build(_build_story(snapshot))
    return buffer.getvalue()


def render_fallback(snapshot: BookingSnapshot) -> bytes:
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _, height = A4
    pdf.setFont("Helvetica-Bold", 18)
    pdf.drawString(50, height - 60, "E-TIKET KERETA API")
    pdf.setFont("Helvetica", 12)
    passenger = snapshot.passengers[0].full_name if snapshot.passengers else snapshot.customer_name
    lines = [
        f"Kode Booking: {snapshot.booking_code}",
        f"Penumpang: {passenger}",
        f"Rute: {_route_text(snapshot)}",
        f"Tanggal: {_format_date(snapshot.departure_date)} {snapshot.departure_time or ''}".rstrip(),
        f"Total: {format_rupiah(snapshot.total_amount)}",
    ]
    y = height - 100
    for line in lines:
        pdf.drawString(50, y, line)
        y -= 20
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


def render_document(snapshot: BookingSnapshot) -> RenderedDocument:
    try:
        return RenderedDocument(content=render_full(snapshot), layout="full")
    except Exception:
        logger.exception("Full ticket layout failed for %s, using fallback layout", snapshot.booking_code)
    return RenderedDocument(content=render_fallback(snapshot), layout="fallback")


def render(snapshot: BookingSnapshot) -> bytes:
    return render_document(snapshot).content
