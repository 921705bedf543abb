# backend/funnel_store/main.py

import logging

from fastapi import FastAPI

from .api import store_endpoint
from .core.logging_config import setup_logging

app = FastAPI(
    title="Signup Funnel Store",
    description="Spreadsheet-style subscriber store behind the landing page and the dashboard.",
    version="1.0.0"
)

app.include_router(store_endpoint.router, tags=["Store"])


@app.on_event("startup")
def startup_event():
    """Initialises logging and the row store."""
    setup_logging()
    logger = logging.getLogger(__name__)
    logger.info("Application startup sequence initiated.")

    from .storage.sqlite_store import get_store
    get_store()

    from .services.email_service import get_email_service
    mailer = get_email_service()
    logger.info(f"Outgoing email {'enabled' if mailer.enabled else 'disabled'}; "
                f"{len(mailer.notification_emails)} notification recipient(s).")
    logger.info("Application startup sequence completed.")


@app.on_event("shutdown")
def shutdown_event():
    logging.getLogger(__name__).info("Application shutdown sequence completed.")


@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Signup Funnel store. POST form data to /exec; see /docs."}
