import io
import unicodedata
from datetime import date
from pathlib import Path

import pytest
import reportlab
from pypdf import PdfReader

from dentalpro.domain.documents import fonts

from dentalpro.domain.documents.invoice_pdf import (
    InvoicePDFGenerator,
    build_financial_rows,
    calculate_net_amount,
    calculate_remaining_balance,
    format_currency,
    invoice_display_number,
)
from dentalpro.domain.documents.prescription_pdf import (
    PrescriptionPDFGenerator,
    build_drug_rows,
    prescription_display_number,
)
from dentalpro.domain.documents.router import content_disposition
from dentalpro.models import Clinic, Invoice, Patient, Prescription, Profile

from .conftest import auth_headers


def make_invoice(**kwargs):
    values = {
        "id": "3f9a1c2e-0000-4000-8000-000000000000",
        "total_amount": 100000,
        "tax_amount": 5000,
        "discount_amount": 10000,
        "paid_amount": 50000,
    }
    values.update(kwargs)
    return Invoice(**values)


def test_net_and_remaining_amounts():
    invoice = make_invoice()
    assert calculate_net_amount(invoice) == 95000
    assert calculate_remaining_balance(invoice) == 45000


def test_missing_amounts_count_as_zero():
    invoice = Invoice(total_amount=40000)
    assert calculate_net_amount(invoice) == 40000
    assert calculate_remaining_balance(invoice) == 40000


def test_overpayment_gives_negative_balance():
    invoice = make_invoice(tax_amount=0, discount_amount=0, paid_amount=120000)
    assert calculate_remaining_balance(invoice) == -20000


def test_format_currency():
    assert format_currency(1500000) == "1,500,000 IQD"
    assert format_currency(0) == "0 IQD"


def test_financial_rows_include_tax_and_discount():
    rows = build_financial_rows(make_invoice())
    assert rows == [
        ("Base amount", "100,000 IQD"),
        ("Tax", "5,000 IQD"),
        ("Discount", "-10,000 IQD"),
        ("Net amount", "95,000 IQD"),
        ("Paid", "50,000 IQD"),
        ("Remaining balance", "45,000 IQD"),
    ]


def test_financial_rows_skip_zero_tax_and_discount():
    labels = [label for label, _ in build_financial_rows(make_invoice(tax_amount=0, discount_amount=None))]
    assert labels == ["Base amount", "Net amount", "Paid", "Remaining balance"]


def test_invoice_number_fallback():
    assert invoice_display_number(make_invoice()) == "INV-3f9a1c2e"
    assert invoice_display_number(make_invoice(invoice_number="INV-2025-001")) == "INV-2025-001"


def test_invoice_pdf_renders():
    clinic = Clinic(name="Smile & Co Dental", address="Erbil", phone="0750", email="hi@smile.iq")
    patient = Patient(first_name="Omar", last_name="Hassan", patient_number="P-7")
    invoice = make_invoice(notes="Crown <upper left>", due_date=date(2025, 7, 1))

    pdf = InvoicePDFGenerator(invoice, clinic, patient).generate()

    assert pdf.startswith(b"%PDF")


def test_invoice_pdf_without_clinic_or_patient():
    assert InvoicePDFGenerator(make_invoice()).generate().startswith(b"%PDF")


def test_drug_rows():
    prescription = Prescription(
        patient_name="Omar Hassan",
        prescribed_drugs=[
            {"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x daily", "duration": "7 days"},
            {"name": "Ibuprofen", "dosage": "400mg", "frequency": "as needed"},
        ],
    )
    assert build_drug_rows(prescription) == [
        ["Amoxicillin", "500mg", "3x daily", "7 days"],
        ["Ibuprofen", "400mg", "as needed", "-"],
    ]


def test_prescription_pdf_renders():
    prescription = Prescription(
        id="9b1e0000-0000-4000-8000-000000000000",
        patient_name="Omar Hassan",
        patient_age=34,
        prescribed_drugs=[{"name": "Amoxicillin", "dosage": "500mg", "frequency": "3x", "duration": "7d"}],
        notes="Take after meals",
    )
    dentist = Profile(
        email="dr@smile.iq",
        first_name="Layla",
        last_name="Saeed",
        specialization="Endodontics",
        license_number="IQ-5521",
    )

    pdf = PrescriptionPDFGenerator(prescription, Clinic(name="Smile"), dentist).generate()

    assert pdf.startswith(b"%PDF")
    assert prescription_display_number(prescription) == "RX-9b1e0000"


@pytest.fixture
def stored_invoice(db_session, clinic):
    patient = Patient(clinic_id=clinic.id, first_name="Omar", last_name="Hassan")
    db_session.add(patient)
    db_session.commit()
    invoice = Invoice(
        clinic_id=clinic.id,
        patient_id=patient.id,
        invoice_number="INV-42",
        total_amount=75000,
    )
    db_session.add(invoice)
    db_session.commit()
    return invoice


def test_invoice_pdf_route(client, dentist, stored_invoice):
    response = client.get(
        f"/documents/invoices/{stored_invoice.id}.pdf", headers=auth_headers(dentist)
    )

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert 'filename="INV-42.pdf"' in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_invoice_pdf_route_is_clinic_scoped(client, db_session, make_profile, stored_invoice):
    other_clinic = Clinic(name="Other Clinic")
    db_session.add(other_clinic)
    db_session.commit()
    outsider = make_profile(clinic=other_clinic)

    response = client.get(
        f"/documents/invoices/{stored_invoice.id}.pdf", headers=auth_headers(outsider)
    )

    assert response.status_code == 404


def test_prescription_pdf_route(client, db_session, clinic, dentist):
    prescription = Prescription(
        clinic_id=clinic.id,
        dentist_id=dentist.id,
        patient_name="Omar Hassan",
        prescribed_drugs=[],
    )
    db_session.add(prescription)
    db_session.commit()

    response = client.get(
        f"/documents/prescriptions/{prescription.id}.pdf", headers=auth_headers(dentist)
    )

    assert response.status_code == 200
    assert response.content.startswith(b"%PDF")


def test_invoice_pdf_route_with_arabic_number(client, db_session, clinic, dentist):
    invoice = Invoice(clinic_id=clinic.id, invoice_number="فاتورة-1", total_amount=75000)
    db_session.add(invoice)
    db_session.commit()

    response = client.get(f"/documents/invoices/{invoice.id}.pdf", headers=auth_headers(dentist))

    assert response.status_code == 200
    disposition = response.headers["content-disposition"]
    assert f'filename="INV-{invoice.id[:8]}.pdf"' in disposition
    assert "filename*=UTF-8''%D9%81%D8%A7%D8%AA%D9%88%D8%B1%D8%A9-1.pdf" in disposition


def test_content_disposition_keeps_ascii_names():
    assert content_disposition("INV-2025-001.pdf", "INV-abcd1234.pdf") == (
        "inline; filename=\"INV-2025-001.pdf\"; filename*=UTF-8''INV-2025-001.pdf"
    )


def test_content_disposition_falls_back_for_unsafe_names():
    header = content_disposition('INV "1";.pdf', "INV-abcd1234.pdf")

    assert header.startswith('inline; filename="INV-abcd1234.pdf"; ')
    assert header.endswith("filename*=UTF-8''INV%20%221%22%3B.pdf")
    header.encode("latin-1")


CLINIC_NAME_AR = "عيادة سمايل"
VERA_DIR = Path(reportlab.__file__).resolve().parent / "fonts"


@pytest.fixture
def fresh_fonts():
    fonts.get_pdf_fonts.cache_clear()
    yield fonts
    fonts.get_pdf_fonts.cache_clear()


def extracted_text(pdf: bytes) -> str:
    reader = PdfReader(io.BytesIO(pdf))
    text = "".join(page.extract_text() for page in reader.pages)
    return unicodedata.normalize("NFKC", text)


def test_shape_text_joins_and_orders_arabic_for_display():
    shaped = fonts.shape_text(CLINIC_NAME_AR)

    assert shaped != CLINIC_NAME_AR
    assert any("\ufe70" <= ch <= "\ufeff" for ch in shaped)
    assert unicodedata.normalize("NFKC", shaped)[::-1] == CLINIC_NAME_AR


def test_shape_text_leaves_latin_text_alone():
    assert fonts.shape_text("Smile Dental 07701234567") == "Smile Dental 07701234567"
    assert fonts.shape_text(None) == ""
    assert fonts.shape_text(42) == "42"
    assert fonts.paragraph_text("Smile & Co <b>") == "Smile &amp; Co &lt;b&gt;"


def test_pdf_fonts_fall_back_to_helvetica(fresh_fonts, monkeypatch):
    monkeypatch.setattr(fonts, "REGULAR_CANDIDATES", [None, "/nonexistent/font.ttf"])

    assert fonts.get_pdf_fonts() == fonts.PDFFonts("Helvetica", "Helvetica-Bold", False)
    pdf = InvoicePDFGenerator(make_invoice(), Clinic(name=CLINIC_NAME_AR)).generate()
    assert pdf.startswith(b"%PDF")


def test_pdfs_are_set_in_the_registered_truetype_font(fresh_fonts, monkeypatch):
    regular, bold = VERA_DIR / "Vera.ttf", VERA_DIR / "VeraBd.ttf"
    if not regular.is_file() or not bold.is_file():
        pytest.skip("reportlab was installed without its bundled fonts")
    monkeypatch.setattr(fonts, "REGULAR_CANDIDATES", [str(regular)])
    monkeypatch.setattr(fonts, "BOLD_CANDIDATES", [str(bold)])

    assert fonts.get_pdf_fonts() == fonts.PDFFonts(fonts.ARABIC_FONT, fonts.ARABIC_FONT_BOLD, True)

    invoice_pdf = InvoicePDFGenerator(
        make_invoice(), Clinic(name="Smile Dental"), Patient(first_name="Omar", last_name="Hassan")
    ).generate()
    prescription_pdf = PrescriptionPDFGenerator(
        Prescription(patient_name="Omar Hassan", prescribed_drugs=[{"name": "Amoxicillin"}]),
        Clinic(name="Smile Dental"),
    ).generate()

    for pdf in (invoice_pdf, prescription_pdf):
        assert b"BitstreamVeraSans-Roman" in pdf
        assert b"BitstreamVeraSans-Bold" in pdf
        assert b"Helvetica-Bold" not in pdf
        assert "Smile Dental" in extracted_text(pdf)


def test_arabic_clinic_name_is_extractable_from_pdf(fresh_fonts):
    if not fonts.get_pdf_fonts().supports_arabic:
        pytest.skip("no Arabic TrueType font installed (set PDF_ARABIC_FONT)")

    clinic = Clinic(name=CLINIC_NAME_AR, address="الكرادة، بغداد")
    patient = Patient(first_name="عمر", last_name="حسن")
    pdf = InvoicePDFGenerator(make_invoice(), clinic, patient).generate()

    text = extracted_text(pdf)
    for word in CLINIC_NAME_AR.split() + ["عمر", "حسن"]:
        assert word in text or word[::-1] in text
