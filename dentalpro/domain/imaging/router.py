"""Imaging router - Medical image upload, signed URLs and analysis"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...auth import require_clinic_member
from ...config import MEDICAL_IMAGES_BUCKET
from ...database import get_db
from ...models import MedicalImage, Patient, Profile
from ...storage import get_signed_image_url, normalize_image_key, upload_image
from .analysis_service import analyze_stored_image

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/images", tags=["Medical Images"])


class SignedUrlRequest(BaseModel):
    path: str


class AnalyzeRequest(BaseModel):
    imageUrl: str
    imageType: str
    analysisType: str = "comprehensive"


def _get_clinic_image(db: Session, image_id: str, clinic_id: str) -> MedicalImage:
    image = (
        db.query(MedicalImage)
        .filter(MedicalImage.id == image_id, MedicalImage.clinic_id == clinic_id)
        .first()
    )
    if not image:
        raise HTTPException(status_code=404, detail="Image not found")
    return image


def _resolve_clinic_image_path(db: Session, path: str, clinic_id: str) -> str:
    """
    Stored path of an image or thumbnail that belongs to `clinic_id`.

    Storage is read with the service credentials, so a key is only signed or
    downloaded when one of the caller's clinic images references it.
    """
    key = normalize_image_key(path)
    variants = sorted({path, key, f"{MEDICAL_IMAGES_BUCKET}/{key}"})
    image = (
        db.query(MedicalImage)
        .filter(
            MedicalImage.clinic_id == clinic_id,
            or_(MedicalImage.image_url.in_(variants), MedicalImage.thumbnail_url.in_(variants)),
        )
        .first()
    )
    if not image:
        logger.warning(f"🚫 Image path outside clinic {clinic_id} requested: {path}")
        raise HTTPException(status_code=404, detail="Image not found")
    if image.image_url in variants:
        return image.image_url
    return image.thumbnail_url


@router.post("", status_code=201)
async def upload_medical_image(
    patient_id: str = Form(...),
    image_type: str = Form(...),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    file: UploadFile = File(...),
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    """Store an image for a patient of the caller's clinic"""
    patient = (
        db.query(Patient)
        .filter(Patient.id == patient_id, Patient.clinic_id == profile.clinic_id)
        .first()
    )
    if not patient:
        raise HTTPException(status_code=404, detail="Patient not found")

    key = await upload_image(MEDICAL_IMAGES_BUCKET, f"{profile.clinic_id}/{patient.id}", file)

    image = MedicalImage(
        clinic_id=profile.clinic_id,
        patient_id=patient.id,
        created_by=profile.id,
        image_type=image_type,
        image_url=key,
        title=title,
        description=description,
    )
    db.add(image)
    db.commit()
    db.refresh(image)

    return {"id": image.id, "image_url": image.image_url, "image_type": image.image_type}


@router.post("/signed-url")
async def create_signed_url(
    body: SignedUrlRequest,
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    """Resolve a stored image path of the caller's clinic to a loadable URL"""
    stored_path = _resolve_clinic_image_path(db, body.path, profile.clinic_id)
    try:
        return {"url": get_signed_image_url(stored_path)}
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to sign image URL") from e


@router.get("/{image_id}/url")
async def get_image_url(
    image_id: str,
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    image = _get_clinic_image(db, image_id, profile.clinic_id)
    try:
        return {
            "url": get_signed_image_url(image.image_url),
            "thumbnail_url": get_signed_image_url(image.thumbnail_url),
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail="Failed to sign image URL") from e


@router.post("/analyze")
async def analyze_image(
    body: AnalyzeRequest,
    profile: Profile = Depends(require_clinic_member),
    db: Session = Depends(get_db),
):
    """Structured analysis of one of the clinic's stored radiographs or photos"""
    stored_path = _resolve_clinic_image_path(db, body.imageUrl, profile.clinic_id)
    return analyze_stored_image(stored_path, body.imageType, body.analysisType)
