import pytest

from dentalpro import storage
from dentalpro.domain.imaging import analysis_service
from dentalpro.domain.imaging.analysis_service import analyze_image_bytes
from dentalpro.models import Clinic, MedicalImage

from .conftest import auth_headers


@pytest.fixture
def presign_calls(monkeypatch):
    calls = []

    def fake_presign(bucket, key, expiration=3600):
        calls.append((bucket, key, expiration))
        return f"https://storage.test/{bucket}/{key}?X-Amz-Signature=abc"

    monkeypatch.setattr(storage, "generate_presigned_url", fake_presign)
    return calls


def test_normalize_image_key_strips_bucket_prefix():
    assert storage.normalize_image_key("medical-images/p1/xray.png") == "p1/xray.png"
    assert storage.normalize_image_key("p1/xray.png") == "p1/xray.png"


def test_signed_url_passes_absolute_urls_through(presign_calls):
    url = "https://cdn.example.com/xray.png"
    assert storage.get_signed_image_url(url) == url
    assert storage.get_signed_image_url(None) is None
    assert presign_calls == []


def test_signed_url_presigns_storage_keys(presign_calls):
    url = storage.get_signed_image_url("medical-images/clinic/p1/xray.png")

    assert url.startswith("https://storage.test/medical-images/clinic/p1/xray.png")
    assert presign_calls == [("medical-images", "clinic/p1/xray.png", 3600)]


def test_signed_url_presigns_keys_that_merely_start_with_http(presign_calls):
    url = storage.get_signed_image_url("httpdocs/p1/xray.png")

    assert url.startswith("https://storage.test/medical-images/httpdocs/p1/xray.png")
    assert presign_calls == [("medical-images", "httpdocs/p1/xray.png", 3600)]


def test_analysis_is_deterministic_per_image():
    first = analyze_image_bytes(b"radiograph-bytes", "xray")
    second = analyze_image_bytes(b"radiograph-bytes", "xray")

    assert first["analysisId"] == second["analysisId"]
    assert first["findings"] == second["findings"]
    assert first["urgency"] == second["urgency"]
    assert first["analysisId"] != analyze_image_bytes(b"other-image", "xray")["analysisId"]


def test_xray_analysis_shape():
    report = analyze_image_bytes(b"radiograph-bytes", "xray", "caries")

    assert report["success"] is True
    assert report["imageType"] == "xray"
    assert report["analysisType"] == "caries"
    assert 0.85 <= report["confidence"] <= 0.95
    assert set(report["findings"]) == {"teeth", "cavities", "boneLoss", "rootCanals", "anomalies"}
    assert report["findings"]["teeth"]["total"] == len(report["findings"]["teeth"]["detected"])
    assert report["urgency"] in {"low", "medium", "high"}
    assert report["recommendations"]
    assert "boneDensity" in report["measurements"]


def test_photo_analysis_reports_image_quality():
    report = analyze_image_bytes(b"intraoral-photo", "photo")

    assert set(report["findings"]) == {"general", "contrast", "clarity", "artifacts"}
    assert "urgency" not in report


def add_image(db_session, clinic, image_url, **kwargs):
    image = MedicalImage(clinic_id=clinic.id, image_type="xray", image_url=image_url, **kwargs)
    db_session.add(image)
    db_session.commit()
    return image


@pytest.fixture
def other_clinic(db_session):
    clinic = Clinic(name="Pearl Dental", address="Mansour, Baghdad")
    db_session.add(clinic)
    db_session.commit()
    return clinic


def test_analyze_route_downloads_from_medical_images(
    client, db_session, clinic, dentist, monkeypatch
):
    add_image(db_session, clinic, f"{clinic.id}/p1/xray.png")
    downloads = []

    def fake_download(bucket, key):
        downloads.append((bucket, key))
        return b"radiograph-bytes"

    monkeypatch.setattr(analysis_service, "download_object", fake_download)

    response = client.post(
        "/images/analyze",
        json={"imageUrl": f"medical-images/{clinic.id}/p1/xray.png", "imageType": "xray"},
        headers=auth_headers(dentist),
    )

    assert response.status_code == 200
    assert response.json()["analysisType"] == "comprehensive"
    assert downloads == [("medical-images", f"{clinic.id}/p1/xray.png")]


def test_analyze_route_download_failure(client, db_session, clinic, dentist, monkeypatch):
    add_image(db_session, clinic, f"{clinic.id}/p1/missing.png")

    def failing_download(bucket, key):
        raise RuntimeError("NoSuchKey")

    monkeypatch.setattr(analysis_service, "download_object", failing_download)

    response = client.post(
        "/images/analyze",
        json={"imageUrl": f"{clinic.id}/p1/missing.png", "imageType": "xray"},
        headers=auth_headers(dentist),
    )

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to download image for analysis"


def test_image_url_route_is_clinic_scoped(client, db_session, clinic, dentist, presign_calls):
    image = MedicalImage(clinic_id=clinic.id, image_type="xray", image_url="p1/xray.png")
    db_session.add(image)
    db_session.commit()

    response = client.get(f"/images/{image.id}/url", headers=auth_headers(dentist))

    assert response.status_code == 200
    assert response.json()["url"].startswith("https://storage.test/medical-images/p1/xray.png")
    assert response.json()["thumbnail_url"] is None

    missing = client.get("/images/unknown/url", headers=auth_headers(dentist))
    assert missing.status_code == 404


def test_analyze_route_refuses_other_clinics_images(
    client, db_session, other_clinic, dentist, monkeypatch
):
    foreign = f"{other_clinic.id}/p9/xray.png"
    add_image(db_session, other_clinic, foreign)
    downloads = []
    monkeypatch.setattr(
        analysis_service, "download_object", lambda bucket, key: downloads.append(key) or b"x"
    )

    for image_url in (foreign, f"medical-images/{foreign}"):
        response = client.post(
            "/images/analyze",
            json={"imageUrl": image_url, "imageType": "xray"},
            headers=auth_headers(dentist),
        )
        assert response.status_code == 404

    assert downloads == []


def test_signed_url_route_signs_own_clinic_paths(
    client, db_session, clinic, dentist, presign_calls
):
    add_image(
        db_session,
        clinic,
        f"{clinic.id}/p1/xray.png",
        thumbnail_url=f"{clinic.id}/p1/xray_thumb.png",
    )

    response = client.post(
        "/images/signed-url",
        json={"path": f"medical-images/{clinic.id}/p1/xray_thumb.png"},
        headers=auth_headers(dentist),
    )

    assert response.status_code == 200
    assert presign_calls == [("medical-images", f"{clinic.id}/p1/xray_thumb.png", 3600)]


def test_signed_url_route_refuses_other_clinics_paths(
    client, db_session, clinic, other_clinic, dentist, presign_calls
):
    add_image(db_session, other_clinic, f"{other_clinic.id}/p9/xray.png")

    for path in (
        f"{other_clinic.id}/p9/xray.png",
        f"medical-images/{other_clinic.id}/p9/xray.png",
        f"{clinic.id}/p1/never-uploaded.png",
    ):
        response = client.post(
            "/images/signed-url", json={"path": path}, headers=auth_headers(dentist)
        )
        assert response.status_code == 404

    assert presign_calls == []
