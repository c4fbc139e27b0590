"""Documents router - PDF rendering for invoices and prescriptions"""

import logging
import re
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ...auth import require_clinic_member
from ...database import get_db
from ...models import Invoice, Prescription, Profile
from .invoice_pdf import InvoicePDFGenerator, invoice_display_number
from .prescription_pdf import PrescriptionPDFGenerator, prescription_display_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


SAFE_FILENAME = re.compile(r"^[A-Za-z0-9._ -]+$")


def content_disposition(filename: str, fallback: str) -> str:
    """
    Inline disposition that survives non-ASCII document numbers.

    Header values must be latin-1, so `filename` is only used as-is when it is
    plain ASCII; browsers pick up the real name from the RFC 5987 `filename*`.
    """
    ascii_name = filename if SAFE_FILENAME.match(filename) else fallback
    return f"inline; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"


def _pdf_response(pdf_bytes: bytes, filename: str, fallback: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": content_disposition(filename, fallback)},
    )


@router.get("/invoices/{invoice_id}.pdf")
async def download_invoice_pdf(
    invoice_id: str,
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    invoice = (
        db.query(Invoice)
        .filter(Invoice.id == invoice_id, Invoice.clinic_id == profile.clinic_id)
        .first()
    )
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")

    try:
        pdf_bytes = InvoicePDFGenerator(invoice, invoice.clinic, invoice.patient).generate()
    except Exception as e:
        logger.error(f"❌ Failed to render invoice {invoice_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate invoice PDF") from e

    return _pdf_response(
        pdf_bytes,
        f"{invoice_display_number(invoice)}.pdf",
        f"INV-{invoice.id[:8]}.pdf",
    )


@router.get("/prescriptions/{prescription_id}.pdf")
async def download_prescription_pdf(
    prescription_id: str,
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    prescription = (
        db.query(Prescription)
        .filter(
            Prescription.id == prescription_id,
            Prescription.clinic_id == profile.clinic_id,
        )
        .first()
    )
    if not prescription:
        raise HTTPException(status_code=404, detail="Prescription not found")

    try:
        pdf_bytes = PrescriptionPDFGenerator(
            prescription, prescription.clinic, prescription.dentist
        ).generate()
    except Exception as e:
        logger.error(f"❌ Failed to render prescription {prescription_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate prescription PDF") from e

    return _pdf_response(
        pdf_bytes,
        f"{prescription_display_number(prescription)}.pdf",
        f"RX-{prescription.id[:8]}.pdf",
    )
