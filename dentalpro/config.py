import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dentalpro.db")

# Supabase Auth - JWTs issued by the hosted auth service are signed with this secret
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

# S3-compatible object storage (Supabase Storage, R2, MinIO)
STORAGE_ENDPOINT_URL = os.getenv("STORAGE_ENDPOINT_URL")
STORAGE_ACCESS_KEY_ID = os.getenv("STORAGE_ACCESS_KEY_ID")
STORAGE_SECRET_ACCESS_KEY = os.getenv("STORAGE_SECRET_ACCESS_KEY")
STORAGE_REGION = os.getenv("STORAGE_REGION", "auto")
MEDICAL_IMAGES_BUCKET = os.getenv("MEDICAL_IMAGES_BUCKET", "medical-images")
PAYMENT_SCREENSHOTS_BUCKET = os.getenv("PAYMENT_SCREENSHOTS_BUCKET", "payment-screenshots")

# First Iraqi Bank online-shop API
# Stage: https://fib.stage.fib.iq  Production: https://fib.prod.fib.iq
FIB_BASE_URL = os.getenv("FIB_BASE_URL", "https://fib.stage.fib.iq")
FIB_CLIENT_ID = os.getenv("FIB_CLIENT_ID")
FIB_CLIENT_SECRET = os.getenv("FIB_CLIENT_SECRET")
# Optional shared secret for the status callback; unset means callbacks are accepted unsigned
FIB_WEBHOOK_SECRET = os.getenv("FIB_WEBHOOK_SECRET")

# Public base URL of this API, used to build the FIB status callback URL
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

# Frontend base URL for links in emails
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv(
    "EMAIL_FROM_ADDRESS", "دنتال برو - Dental Pro <welcome@dentalpro.com>"
)
# Standard Webhooks secret for the auth "send email" hook (whsec_...)
SEND_EMAIL_HOOK_SECRET = os.getenv("SEND_EMAIL_HOOK_SECRET")

# Rough IQD -> USD rate used when recording subscription amounts
IQD_PER_USD = int(os.getenv("IQD_PER_USD", "1316"))
