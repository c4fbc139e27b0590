import os
import time

# Settings must be in place before dentalpro.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["API_BASE_URL"] = "https://api.dentalpro.test"
for key in (
    "FIB_CLIENT_ID",
    "FIB_CLIENT_SECRET",
    "FIB_WEBHOOK_SECRET",
    "SEND_EMAIL_HOOK_SECRET",
    "RESEND_API_KEY",
    "REDIS_URL",
):
    os.environ.pop(key, None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from dentalpro.database import Base, SessionLocal, engine, get_db  # noqa: E402
from dentalpro.main import app  # noqa: E402
from dentalpro.models import Clinic, Profile  # noqa: E402
from dentalpro.rate_limiter import (  # noqa: E402
    rate_limit_manual_payment,
    rate_limit_payment_creation,
)
from dentalpro.routes.email import limit_direct_calls  # noqa: E402

JWT_SECRET = "test-jwt-secret"


def make_token(user_id: str, expires_in: int = 3600) -> str:
    return jwt.encode(
        {"sub": user_id, "aud": "authenticated", "exp": int(time.time()) + expires_in},
        JWT_SECRET,
        algorithm="HS256",
    )


def auth_headers(profile: Profile) -> dict:
    return {"Authorization": f"Bearer {make_token(profile.user_id)}"}


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    async def no_rate_limit():
        return None

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[rate_limit_payment_creation] = no_rate_limit
    app.dependency_overrides[rate_limit_manual_payment] = no_rate_limit
    app.dependency_overrides[limit_direct_calls] = no_rate_limit
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def clinic(db_session):
    clinic = Clinic(name="Smile Dental", address="Karrada, Baghdad", phone="07701234567")
    db_session.add(clinic)
    db_session.commit()
    return clinic


@pytest.fixture
def make_profile(db_session):
    counter = {"n": 0}

    def _make(clinic=None, system_role="user", role="dentist", **kwargs):
        counter["n"] += 1
        n = counter["n"]
        profile = Profile(
            user_id=kwargs.pop("user_id", f"user-{n}"),
            clinic_id=clinic.id if clinic else None,
            email=kwargs.pop("email", f"user{n}@example.com"),
            first_name=kwargs.pop("first_name", "Sara"),
            last_name=kwargs.pop("last_name", "Ali"),
            role=role,
            system_role=system_role,
            **kwargs,
        )
        db_session.add(profile)
        db_session.commit()
        return profile

    return _make


@pytest.fixture
def dentist(make_profile, clinic):
    return make_profile(clinic=clinic)


@pytest.fixture
def super_admin(make_profile):
    return make_profile(system_role="super_admin", email="admin@dentalpro.com")
