"""PDF registration receipt rendered with reportlab."""

from __future__ import annotations

import io
from dataclasses import dataclass
from datetime import date
from xml.sax.saxutils import escape

from reportlab.graphics.barcode.qr import QrCodeWidget
from reportlab.graphics.shapes import Drawing
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

BRAND_COLOR = colors.HexColor("#6b2d1f")
QR_SIZE = 4.5 * cm


@dataclass(slots=True, frozen=True)
class ReceiptData:
    """Values printed on one receipt."""

    registration_id: str
    name: str
    email: str
    mobile: str
    competition_name: str
    competition_city: str
    amount: str
    payment_id: str
    issued_on: date


class ReceiptRenderer:
    """Builds a one-page receipt with a check-in QR code."""

    def __init__(self, *, event_name: str, organizer_name: str) -> None:
        self._event_name = event_name
        self._organizer_name = organizer_name
        base = getSampleStyleSheet()
        self._styles = {
            "title": ParagraphStyle(
                "ReceiptTitle",
                parent=base["Title"],
                textColor=BRAND_COLOR,
                fontSize=20,
            ),
            "subtitle": ParagraphStyle(
                "ReceiptSubtitle",
                parent=base["Heading2"],
                alignment=TA_CENTER,
            ),
            "date": ParagraphStyle(
                "ReceiptDate",
                parent=base["Normal"],
                alignment=TA_RIGHT,
            ),
            "section": ParagraphStyle(
                "ReceiptSection",
                parent=base["Heading3"],
                textColor=BRAND_COLOR,
            ),
            "body": base["Normal"],
            "center": ParagraphStyle(
                "ReceiptCenter",
                parent=base["Normal"],
                alignment=TA_CENTER,
            ),
        }

    def render(self, data: ReceiptData) -> bytes:
        buffer = io.BytesIO()
        document = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
            title=f"Receipt {data.registration_id}",
        )
        document.build(self._story(data))
        return buffer.getvalue()

    def _story(self, data: ReceiptData) -> list[object]:
        styles = self._styles
        return [
            Paragraph(escape(self._event_name), styles["title"]),
            Paragraph("Registration Receipt", styles["subtitle"]),
            Spacer(1, 0.4 * cm),
            Paragraph(f"Date: {data.issued_on.strftime('%d/%m/%Y')}", styles["date"]),
            Paragraph("Participant Details", styles["section"]),
            Paragraph(f"Name: {escape(data.name)}", styles["body"]),
            Paragraph(f"Email: {escape(data.email)}", styles["body"]),
            Paragraph(f"Mobile: {escape(data.mobile)}", styles["body"]),
            Paragraph(f"Competition: {escape(data.competition_name)}", styles["body"]),
            Paragraph(f"City: {escape(data.competition_city.title())}", styles["body"]),
            Spacer(1, 0.6 * cm),
            self._payment_table(data),
            Spacer(1, 0.8 * cm),
            self._qr_code(data.registration_id),
            Paragraph("Scan at Event Check-In", styles["center"]),
            Spacer(1, 1.2 * cm),
            Paragraph(
                "Thank you for registering! "
                "We look forward to seeing you at the event.",
                styles["center"],
            ),
            Paragraph(
                f"&copy; {data.issued_on.year} {escape(self._organizer_name)}",
                styles["center"],
            ),
        ]

    def _payment_table(self, data: ReceiptData) -> Table:
        table = Table(
            [
                ["Registration ID", data.registration_id],
                ["Payment ID", data.payment_id or "-"],
                ["Amount Paid", f"INR {data.amount}"],
                ["Status", "Paid"],
            ],
            colWidths=[5 * cm, 10 * cm],
        )
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#f3e9e4")),
                    ("TEXTCOLOR", (0, 0), (0, -1), BRAND_COLOR),
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        return table

    def _qr_code(self, value: str) -> Drawing:
        widget = QrCodeWidget(value)
        left, bottom, right, top = widget.getBounds()
        width, height = right - left, top - bottom
        drawing = Drawing(
            QR_SIZE,
            QR_SIZE,
            transform=[QR_SIZE / width, 0, 0, QR_SIZE / height, 0, 0],
        )
        drawing.add(widget)
        drawing.hAlign = "CENTER"
        return drawing
