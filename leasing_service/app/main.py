import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from shared.core.database import leasing_engine, Base
from shared.exception_handler import setup_exception_handlers

from . import models  # noqa: F401  registers tables on Base
from .router.billing import billing_router, invoice_router
from .router.leasing import leases_router
from .services.billing.exceptions import BillingError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

app = FastAPI(title="Leasing Service API")

# Create all tables
Base.metadata.create_all(bind=leasing_engine)

# Allow requests from your React app
origins = [
    "http://localhost:8080",
    "http://127.0.0.1:8003"
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app, domain_error=BillingError)

# Include routers
app.include_router(leases_router.router)
app.include_router(billing_router.router)
app.include_router(invoice_router.router)
