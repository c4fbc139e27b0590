"""
Invoice PDF Generator
Renders a patient invoice with the clinic header and a financial summary table
"""

import io
import logging
from datetime import date, datetime
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...models import Clinic, Invoice, Patient
from .fonts import get_pdf_fonts, paragraph_text, shape_text

logger = logging.getLogger(__name__)

CURRENCY = "IQD"


def _amount(value) -> float:
    return float(value or 0)


def calculate_net_amount(invoice: Invoice) -> float:
    """Net = base + tax - discount; missing amounts count as zero"""
    return (
        _amount(invoice.total_amount)
        + _amount(invoice.tax_amount)
        - _amount(invoice.discount_amount)
    )


def calculate_remaining_balance(invoice: Invoice) -> float:
    return calculate_net_amount(invoice) - _amount(invoice.paid_amount)


def format_currency(amount: float) -> str:
    """Whole dinars with thousands separators, e.g. "15,000 IQD" """
    return f"{amount:,.0f} {CURRENCY}"


def format_date(value: Optional[date]) -> str:
    if not value:
        return "-"
    return value.strftime("%Y-%m-%d")


def invoice_display_number(invoice: Invoice) -> str:
    if invoice.invoice_number:
        return invoice.invoice_number
    return f"INV-{(invoice.id or '')[:8]}"


def build_financial_rows(invoice: Invoice) -> list[tuple[str, str]]:
    """Summary rows; tax and discount appear only when non-zero"""
    rows = [("Base amount", format_currency(_amount(invoice.total_amount)))]

    tax = _amount(invoice.tax_amount)
    if tax > 0:
        rows.append(("Tax", format_currency(tax)))

    discount = _amount(invoice.discount_amount)
    if discount > 0:
        rows.append(("Discount", format_currency(-discount)))

    rows.append(("Net amount", format_currency(calculate_net_amount(invoice))))
    rows.append(("Paid", format_currency(_amount(invoice.paid_amount))))
    rows.append(("Remaining balance", format_currency(calculate_remaining_balance(invoice))))
    return rows


class InvoicePDFGenerator:
    """Generate an invoice PDF from an invoice and its clinic and patient"""

    def __init__(
        self,
        invoice: Invoice,
        clinic: Optional[Clinic] = None,
        patient: Optional[Patient] = None,
    ):
        self.invoice = invoice
        self.clinic = clinic
        self.patient = patient

        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch

        self.brand_color = colors.HexColor("#2563eb")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def generate(self) -> bytes:
        """Generate PDF and return bytes"""
        number = invoice_display_number(self.invoice)
        logger.info(f"📄 Generating invoice PDF {number}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Invoice {number}",
        )

        fonts = get_pdf_fonts()
        styles = getSampleStyleSheet()
        clinic_style = ParagraphStyle(
            "ClinicName",
            parent=styles["Heading1"],
            fontName=fonts.bold,
            fontSize=20,
            textColor=self.brand_color,
            spaceAfter=4,
        )
        title_style = ParagraphStyle(
            "InvoiceTitle",
            parent=styles["Heading2"],
            fontName=fonts.bold,
            fontSize=16,
            textColor=self.dark_gray,
            spaceBefore=12,
            spaceAfter=6,
        )
        body_style = ParagraphStyle(
            "InvoiceBody",
            parent=styles["Normal"],
            fontName=fonts.regular,
            fontSize=10,
            textColor=self.dark_gray,
            spaceAfter=4,
        )

        story = []

        # Clinic header
        clinic_name = self.clinic.name if self.clinic else "Dental Clinic"
        story.append(Paragraph(paragraph_text(clinic_name), clinic_style))
        for line in self._clinic_contact_lines():
            story.append(Paragraph(paragraph_text(line), body_style))

        # Title
        issued = self.invoice.created_at or datetime.utcnow()
        story.append(Paragraph(f"INVOICE {paragraph_text(number)}", title_style))
        story.append(Paragraph(f"Date: {format_date(issued)}", body_style))
        story.append(Spacer(1, 0.2 * inch))

        # Patient box
        patient_table = Table(self._patient_rows(), colWidths=[1.5 * inch, 4.5 * inch])
        patient_table.setStyle(
            TableStyle(
                [
                    ("BOX", (0, 0), (-1, -1), 0.75, self.brand_color),
                    ("BACKGROUND", (0, 0), (-1, -1), self.light_gray),
                    ("FONT", (0, 0), (0, -1), fonts.bold, 10),
                    ("FONT", (1, 0), (1, -1), fonts.regular, 10),
                    ("TEXTCOLOR", (0, 0), (-1, -1), self.dark_gray),
                    ("LEFTPADDING", (0, 0), (-1, -1), 8),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(patient_table)
        story.append(Spacer(1, 0.3 * inch))

        # Financial summary
        rows = build_financial_rows(self.invoice)
        table_data = [["Description", "Amount"]] + [list(row) for row in rows]
        summary_table = Table(table_data, colWidths=[4 * inch, 2 * inch])
        summary_table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONT", (0, 0), (-1, 0), fonts.bold, 10),
                    ("FONT", (0, 1), (-1, -1), fonts.regular, 10),
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                    ("FONT", (0, -1), (-1, -1), fonts.bold, 11),
                    ("LINEABOVE", (0, -1), (-1, -1), 1, self.dark_gray),
                    ("GRID", (0, 0), (-1, -2), 0.5, colors.grey),
                    ("LEFTPADDING", (0, 0), (-1, -1), 8),
                    ("RIGHTPADDING", (0, 0), (-1, -1), 8),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(summary_table)

        if self.invoice.notes:
            story.append(Spacer(1, 0.3 * inch))
            story.append(Paragraph("<b>Notes</b>", body_style))
            story.append(Paragraph(paragraph_text(self.invoice.notes), body_style))

        if self.invoice.due_date:
            story.append(Spacer(1, 0.2 * inch))
            story.append(
                Paragraph(f"<b>Due date:</b> {format_date(self.invoice.due_date)}", body_style)
            )

        story.append(Spacer(1, 0.5 * inch))
        story.append(
            Paragraph(
                "<i>Thank you for choosing our clinic.</i>",
                ParagraphStyle(
                    "Footer",
                    parent=body_style,
                    fontSize=9,
                    textColor=colors.grey,
                    alignment=1,
                ),
            )
        )

        doc.build(story, onFirstPage=self._add_page_number, onLaterPages=self._add_page_number)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated invoice PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _clinic_contact_lines(self) -> list[str]:
        if not self.clinic:
            return []
        return [
            line
            for line in [self.clinic.address, self.clinic.phone, self.clinic.email]
            if line
        ]

    def _patient_rows(self) -> list[list[str]]:
        if not self.patient:
            return [["Patient:", "-"]]
        rows = [
            ["Patient:", f"{self.patient.first_name} {self.patient.last_name}"],
        ]
        if self.patient.patient_number:
            rows.append(["Patient No.:", self.patient.patient_number])
        if self.patient.phone:
            rows.append(["Phone:", self.patient.phone])
        return [[label, shape_text(value)] for label, value in rows]

    def _add_page_number(self, canvas_obj, doc):
        """Add page numbers to PDF"""
        page_num = canvas_obj.getPageNumber()
        canvas_obj.setFont("Helvetica", 9)
        canvas_obj.setFillColor(colors.grey)
        canvas_obj.drawRightString(self.page_width - self.margin, self.margin / 2, f"Page {page_num}")
