"""
Object storage helpers for medical images and payment screenshots.
Buckets live on an S3-compatible endpoint and are private; reads go through presigned URLs.
"""

import logging
import uuid
from typing import Optional

import boto3
from botocore.config import Config
from fastapi import HTTPException, UploadFile

from .config import (
    MEDICAL_IMAGES_BUCKET,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_ENDPOINT_URL,
    STORAGE_REGION,
    STORAGE_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

# Presigned URL expiration time (1 hour)
PRESIGNED_URL_EXPIRATION = 3600

ALLOWED_IMAGE_TYPES = [
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/webp",
    "image/gif",
    "image/bmp",
    "image/tiff",
    "application/dicom",
]

MAX_UPLOAD_BYTES = 10 * 1024 * 1024


def get_storage_client():
    """Create and return an S3 client for the configured storage endpoint."""
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT_URL,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        region_name=STORAGE_REGION,
        config=Config(signature_version="s3v4"),
    )


def generate_presigned_url(
    bucket: str, key: str, expiration: int = PRESIGNED_URL_EXPIRATION
) -> str:
    """Generate a presigned URL for accessing a private object."""
    client = get_storage_client()
    try:
        url = client.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key, "ResponseContentDisposition": "inline"},
            ExpiresIn=expiration,
        )
        logger.info(f"✅ Generated presigned URL for {bucket}/{key}")
        return url
    except Exception as e:
        logger.error(f"❌ Failed to generate presigned URL for {bucket}/{key}: {e}")
        raise


def normalize_image_key(image_path: str) -> str:
    """Strip a duplicated bucket prefix from a stored medical image path"""
    prefix = f"{MEDICAL_IMAGES_BUCKET}/"
    if image_path.startswith(prefix):
        return image_path[len(prefix):]
    return image_path


def get_signed_image_url(image_path: Optional[str]) -> Optional[str]:
    """
    Resolve a medical image path to a URL the browser can load.
    Absolute URLs are returned untouched.
    """
    if not image_path:
        return None
    if image_path.startswith(("http://", "https://")):
        return image_path
    return generate_presigned_url(MEDICAL_IMAGES_BUCKET, normalize_image_key(image_path))


def download_object(bucket: str, key: str) -> bytes:
    """Fetch an object's bytes"""
    client = get_storage_client()
    try:
        response = client.get_object(Bucket=bucket, Key=key)
        return response["Body"].read()
    except Exception as e:
        logger.error(f"❌ Failed to download {bucket}/{key}: {e}")
        raise


async def upload_image(bucket: str, prefix: str, file: UploadFile) -> str:
    """Validate and store an uploaded image; returns the object key"""
    if file.content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Invalid file type. Only images are allowed.")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(content) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File too large. Maximum size is 10MB.")

    extension = ""
    if file.filename and "." in file.filename:
        extension = "." + file.filename.rsplit(".", 1)[-1].lower()
        if not extension[1:].isalnum():
            raise HTTPException(status_code=400, detail="Invalid filename")

    key = f"{prefix}/{uuid.uuid4()}{extension}"

    client = get_storage_client()
    client.put_object(Bucket=bucket, Key=key, Body=content, ContentType=file.content_type)
    logger.info(f"📤 Uploaded {len(content)} bytes to {bucket}/{key}")
    return key
