from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from royaltymeds.core.config import settings
from royaltymeds.core.logging import setup_logging
from royaltymeds.api.exception_handlers import register_exception_handlers
from royaltymeds.api.v1.auth import router as auth_router
from royaltymeds.api.v1.patient_prescriptions import router as patient_prescriptions_router
from royaltymeds.api.v1.doctor_prescriptions import router as doctor_prescriptions_router
from royaltymeds.api.v1.admin_prescriptions import router as admin_prescriptions_router
from royaltymeds.api.v1.store import router as store_router
from royaltymeds.api.v1.cart import router as cart_router
from royaltymeds.api.v1.orders import router as orders_router
from royaltymeds.api.v1.admin_orders import router as admin_orders_router
from royaltymeds.api.v1.admin_settings import router as admin_settings_router
from royaltymeds.api.v1.audit_logs import router as audit_logs_router


setup_logging()

app = FastAPI(title=settings.APP_NAME, version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth_router)
app.include_router(patient_prescriptions_router)
app.include_router(doctor_prescriptions_router)
app.include_router(admin_prescriptions_router)
app.include_router(store_router)
app.include_router(cart_router)
app.include_router(orders_router)
app.include_router(admin_orders_router)
app.include_router(admin_settings_router)
app.include_router(audit_logs_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
