import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a string UUID primary key"""
    return str(uuid.uuid4())


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    address = Column(String(500), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)  # Storage key or absolute URL
    settings = Column(JSON, nullable=True)
    # Denormalised copy of the active subscription for quick gating
    subscription_status = Column(String(50), default="inactive", nullable=True)
    subscription_plan = Column(String(50), nullable=True)  # basic, premium, enterprise
    subscription_end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    profiles = relationship("Profile", back_populates="clinic")
    patients = relationship("Patient", back_populates="clinic")


class Profile(Base):
    """Staff / user profile linked to an auth user"""

    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=True)  # Auth subject (JWT sub)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    email = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar_url = Column(String(500), nullable=True)
    # admin, dentist, assistant, receptionist, patient, supplier
    role = Column(String(50), default="dentist", nullable=True)
    # super_admin, support, user
    system_role = Column(String(50), default="user", nullable=True)
    specialization = Column(String(255), nullable=True)
    license_number = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="profiles")

    @property
    def full_name(self) -> str:
        return " ".join(part for part in [self.first_name, self.last_name] if part)


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_number = Column(String(50), nullable=True)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    date_of_birth = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    emergency_contact_name = Column(String(255), nullable=True)
    emergency_contact_phone = Column(String(50), nullable=True)
    insurance_provider = Column(String(255), nullable=True)
    insurance_number = Column(String(100), nullable=True)
    allergies = Column(JSON, nullable=True)  # list of strings
    medications = Column(JSON, nullable=True)  # list of strings
    medical_history = Column(JSON, nullable=True)
    dental_history = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)  # Soft delete
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic", back_populates="patients")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    dentist_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    appointment_date = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, default=30)
    status = Column(String(50), default="scheduled")  # scheduled, confirmed, completed, cancelled
    treatment_type = Column(String(255), nullable=True)
    chief_complaint = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    reminders_sent = Column(Integer, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Treatment(Base):
    __tablename__ = "treatments"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    dentist_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    treatment_name = Column(String(255), nullable=False)
    treatment_code = Column(String(50), nullable=True)
    description = Column(Text, nullable=True)
    tooth_numbers = Column(JSON, nullable=True)  # list of ints
    cost = Column(Float, nullable=True)
    insurance_covered = Column(Float, nullable=True)
    patient_paid = Column(Float, nullable=True)
    status = Column(String(50), default="planned")  # planned, in_progress, completed
    treatment_date = Column(Date, nullable=True)
    completion_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Invoice(Base):
    """Patient invoice; amounts are IQD"""

    __tablename__ = "invoices"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    invoice_number = Column(String(50), nullable=True, index=True)
    total_amount = Column(Float, nullable=False)  # Base amount before tax/discount
    tax_amount = Column(Float, default=0)
    discount_amount = Column(Float, default=0)
    paid_amount = Column(Float, default=0)
    status = Column(String(50), default="pending")  # pending, partial, paid, overdue, cancelled
    payment_method = Column(String(50), nullable=True)
    due_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("Patient")
    clinic = relationship("Clinic")


class MedicalImage(Base):
    __tablename__ = "medical_images"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    appointment_id = Column(String(36), ForeignKey("appointments.id"), nullable=True)
    created_by = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    image_type = Column(String(50), nullable=False)  # xray, intraoral, panoramic, photo
    image_url = Column(String(500), nullable=False)  # Storage key inside the medical-images bucket
    thumbnail_url = Column(String(500), nullable=True)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    tooth_numbers = Column(JSON, nullable=True)
    annotations = Column(JSON, nullable=True)
    image_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    clinic_id = Column(String(36), ForeignKey("clinics.id"), nullable=True, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=True)
    dentist_id = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    prescription_number = Column(String(50), nullable=True)
    patient_name = Column(String(255), nullable=False)
    patient_age = Column(Integer, nullable=True)
    # [{"name": "...", "dosage": "...", "frequency": "...", "duration": "..."}]
    prescribed_drugs = Column(JSON, default=list, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    clinic = relationship("Clinic")
    dentist = relationship("Profile")


class Supplier(Base):
    """Supplier tenant selling products to clinics"""

    __tablename__ = "suppliers"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), unique=True, index=True, nullable=True)
    company_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    logo_url = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    business_license = Column(String(100), nullable=True)
    tax_id = Column(String(100), nullable=True)
    # Payout accounts shown to buyers
    fib_account_number = Column(String(100), nullable=True)
    qi_card_number = Column(String(100), nullable=True)
    zaincash_number = Column(String(100), nullable=True)
    rating = Column(Float, default=0)
    total_reviews = Column(Integer, default=0)
    verified = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    products = relationship("Product", back_populates="supplier")


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    supplier_id = Column(String(36), ForeignKey("suppliers.id"), nullable=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    brand = Column(String(255), nullable=True)
    model = Column(String(255), nullable=True)
    sku = Column(String(100), nullable=True)
    barcode = Column(String(100), nullable=True)
    unit_price = Column(Float, nullable=False)
    bulk_price = Column(Float, nullable=True)
    bulk_quantity = Column(Integer, nullable=True)
    currency = Column(String(10), default="IQD")
    stock_quantity = Column(Integer, default=0)
    min_stock_level = Column(Integer, nullable=True)
    max_stock_level = Column(Integer, nullable=True)
    images = Column(JSON, nullable=True)
    specifications = Column(JSON, nullable=True)
    requires_prescription = Column(Boolean, default=False)
    warranty_months = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    supplier = relationship("Supplier", back_populates="products")
