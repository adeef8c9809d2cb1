from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from lms_governance.db.init_db import init_db
from lms_governance.db.session import SessionLocal, engine
from lms_governance.governance.alerts import DeadLetterStore, WebhookAlerter
from lms_governance.governance.audit import AuditSink
from lms_governance.governance.config import load_governance_config
from lms_governance.logging_config import configure_app_logging
from lms_governance.routers import audit, departments, faculty, health, me
from lms_governance.security.dependencies import enforce_governance
from lms_governance.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def build_audit_sink(settings: Settings, session_factory=SessionLocal) -> AuditSink:
    dead_letter = DeadLetterStore(settings.resolved_dead_letter_path())
    alerter = WebhookAlerter(settings.audit_alert_webhook_url, settings.audit_alert_timeout_seconds)
    logger.info(
        "Audit sink ready (dead letter: %s, webhook alerts: %s)",
        dead_letter.path,
        "on" if alerter.enabled else "off",
    )
    return AuditSink(session_factory, dead_letter, alerter, redacted_fields=settings.audit_redacted_fields)


def create_app() -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings = get_settings()
        configure_app_logging(settings.log_level)
        logger.info("App startup beginning")

        config_path = settings.resolved_governance_config_path()
        app.state.governance_config = load_governance_config(config_path)
        logger.info("Loaded governance config: %s", config_path)

        app.state.audit_sink = build_audit_sink(settings)

        init_db(engine, seed=settings.seed_demo_data)
        logger.info("Database initialized (tables ensured + seed if enabled)")

        yield

    # Global dependency: governance runs before every route handler.
    app = FastAPI(title="LMS Governance", dependencies=[Depends(enforce_governance)], lifespan=lifespan)

    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(departments.router)
    app.include_router(faculty.router)
    app.include_router(audit.router)

    return app


app = create_app()
