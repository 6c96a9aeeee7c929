from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import SessionLocal, init_db
from app.logging_config import get_logger, setup_logging
from app.routers import admin, webhook
from app.services.config_cache import ConfigLoadError, get_config_cache

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="Guesthouse SMS Bot",
    description="SMS auto-responder for guesthouse guests",
    version="0.1.0",
)

cors_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()]
if not cors_origins:
    cors_origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(admin.router)


@app.on_event("startup")
def load_initial_config() -> None:
    if settings.create_tables:
        init_db()
    db = SessionLocal()
    try:
        get_config_cache().load(db)
    except ConfigLoadError as exc:
        # first inbound message retries through ensure_loaded
        logger.error("Initial config load failed", extra={"context": {"error": str(exc)}})
    finally:
        db.close()


@app.get("/health")
def health():
    return {"status": "ok"}
