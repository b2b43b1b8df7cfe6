import secrets
import string
from datetime import datetime

from fastapi import HTTPException, UploadFile, status

from royaltymeds.core.config import settings

MAX_BYTES = settings.MAX_UPLOAD_MB * 1024 * 1024
DOCUMENT_TYPES = {"image/png", "image/jpeg", "image/webp", "application/pdf"}

def gen_code(n: int = 8) -> str:
    alphabet = string.ascii_uppercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(n))

def generate_prescription_number(now: datetime | None = None) -> str:
    # MONJAN12-103055: weekday, month, day of month, then time
    now = now or datetime.now()
    return now.strftime("%a%b%d-%H%M%S").upper()

def generate_order_number(now: datetime | None = None, prefix: str = "ORD") -> str:
    # ORD- for cart checkouts, RX- for orders raised from a prescription
    now = now or datetime.now()
    stamp = str(int(now.timestamp() * 1000))[-6:]
    return f"{prefix}-{stamp}{gen_code(6)}"

async def read_and_validate_document(file: UploadFile) -> bytes:
    if file.content_type not in DOCUMENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only PNG, JPG, WEBP or PDF files are accepted",
        )
    b = await file.read()
    if not b:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(b) > MAX_BYTES:
        raise HTTPException(status_code=413, detail=f"Maximum upload size is {settings.MAX_UPLOAD_MB} MB")
    return b
