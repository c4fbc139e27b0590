"""
Prescription PDF Generator
"""

import io
import logging
from datetime import datetime
from typing import Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ...models import Clinic, Prescription, Profile
from .fonts import get_pdf_fonts, paragraph_text, shape_text
from .invoice_pdf import format_date

logger = logging.getLogger(__name__)

DRUG_COLUMNS = ("name", "dosage", "frequency", "duration")


def prescription_display_number(prescription: Prescription) -> str:
    if prescription.prescription_number:
        return prescription.prescription_number
    return f"RX-{(prescription.id or '')[:8]}"


def build_drug_rows(prescription: Prescription) -> list[list[str]]:
    """One row per prescribed drug; blank fields render as "-" """
    rows = []
    for drug in prescription.prescribed_drugs or []:
        rows.append([str(drug.get(column) or "-") for column in DRUG_COLUMNS])
    return rows


class PrescriptionPDFGenerator:
    """Generate a prescription PDF"""

    def __init__(
        self,
        prescription: Prescription,
        clinic: Optional[Clinic] = None,
        dentist: Optional[Profile] = None,
    ):
        self.prescription = prescription
        self.clinic = clinic
        self.dentist = dentist

        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch
        self.brand_color = colors.HexColor("#2563eb")
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#f1f5f9")

    def generate(self) -> bytes:
        number = prescription_display_number(self.prescription)
        logger.info(f"📄 Generating prescription PDF {number}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Prescription {number}",
        )

        fonts = get_pdf_fonts()
        styles = getSampleStyleSheet()
        header_style = ParagraphStyle(
            "ClinicName",
            parent=styles["Heading1"],
            fontName=fonts.bold,
            fontSize=20,
            textColor=self.brand_color,
            alignment=1,
            spaceAfter=4,
        )
        body_style = ParagraphStyle(
            "RxBody",
            parent=styles["Normal"],
            fontName=fonts.regular,
            fontSize=10,
            textColor=self.dark_gray,
            spaceAfter=4,
        )
        centered_style = ParagraphStyle("RxCentered", parent=body_style, alignment=1)

        story = []

        clinic_name = self.clinic.name if self.clinic else "Dental Clinic"
        story.append(Paragraph(paragraph_text(clinic_name), header_style))
        if self.clinic:
            contact = " | ".join(
                part for part in [self.clinic.address, self.clinic.phone] if part
            )
            if contact:
                story.append(Paragraph(paragraph_text(contact), centered_style))
        story.append(Spacer(1, 0.2 * inch))
        story.append(Paragraph(f"<b>PRESCRIPTION</b> {paragraph_text(number)}", centered_style))
        story.append(Spacer(1, 0.2 * inch))

        # Dentist and patient blocks side by side
        issued = self.prescription.created_at or datetime.utcnow()
        info_table = Table(
            [[self._dentist_block(body_style), self._patient_block(body_style, issued)]],
            colWidths=[3 * inch, 3 * inch],
        )
        info_table.setStyle(
            TableStyle(
                [
                    ("BOX", (0, 0), (-1, -1), 0.75, self.brand_color),
                    ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("LEFTPADDING", (0, 0), (-1, -1), 8),
                    ("TOPPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(info_table)
        story.append(Spacer(1, 0.3 * inch))

        story.append(Paragraph("<b>Rx</b>", body_style))
        drug_rows = build_drug_rows(self.prescription)
        if drug_rows:
            drug_table = Table(
                [["Medication", "Dosage", "Frequency", "Duration"]]
                + [[shape_text(cell) for cell in row] for row in drug_rows],
                colWidths=[2.1 * inch, 1.3 * inch, 1.4 * inch, 1.2 * inch],
                repeatRows=1,
            )
            drug_table.setStyle(
                TableStyle(
                    [
                        ("BACKGROUND", (0, 0), (-1, 0), self.brand_color),
                        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                        ("FONT", (0, 0), (-1, 0), fonts.bold, 10),
                        ("FONT", (0, 1), (-1, -1), fonts.regular, 9),
                        ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, self.light_gray]),
                        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                        ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ]
                )
            )
            story.append(drug_table)
        else:
            story.append(Paragraph("No medications prescribed.", body_style))

        if self.prescription.notes:
            story.append(Spacer(1, 0.3 * inch))
            story.append(Paragraph("<b>Instructions</b>", body_style))
            story.append(Paragraph(paragraph_text(self.prescription.notes), body_style))

        story.append(Spacer(1, 0.8 * inch))
        story.append(Paragraph("_____________________________", body_style))
        story.append(Paragraph("Dentist signature", body_style))

        doc.build(story)

        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated prescription PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes

    def _dentist_block(self, style) -> list:
        if not self.dentist:
            return [Paragraph("<b>Dentist:</b> -", style)]
        block = [Paragraph(f"<b>Dr. {paragraph_text(self.dentist.full_name or self.dentist.email)}</b>", style)]
        if self.dentist.specialization:
            block.append(Paragraph(paragraph_text(self.dentist.specialization), style))
        if self.dentist.license_number:
            block.append(Paragraph(f"License: {paragraph_text(self.dentist.license_number)}", style))
        return block

    def _patient_block(self, style, issued) -> list:
        block = [Paragraph(f"<b>Patient:</b> {paragraph_text(self.prescription.patient_name)}", style)]
        if self.prescription.patient_age is not None:
            block.append(Paragraph(f"<b>Age:</b> {self.prescription.patient_age}", style))
        block.append(Paragraph(f"<b>Date:</b> {format_date(issued)}", style))
        return block
