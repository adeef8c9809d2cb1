from __future__ import annotations

import logging
import sys

SECURITY_ALERT_LOGGER = "lms_governance.security_alerts"


def configure_app_logging(level: str = "INFO") -> None:
    """
    Minimal logging configuration for this repo.

    Notes:
    - Plain stdlib logging; Uvicorn already configures the root handlers.
    - Set `LMS_LOG_LEVEL=DEBUG` (or INFO/WARNING/ERROR) to control verbosity.
    - The security-alert logger always writes WARNING and above to stderr,
      whatever the package level is.
    """

    normalized = level.upper()
    logging.getLogger("lms_governance").setLevel(normalized)
    logging.getLogger("lms_governance").propagate = True

    configure_security_alert_logger()


def configure_security_alert_logger() -> logging.Logger:
    alerts = logging.getLogger(SECURITY_ALERT_LOGGER)
    alerts.setLevel(logging.WARNING)

    if not any(getattr(h, "_lms_security_alert", False) for h in alerts.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.WARNING)
        handler.setFormatter(logging.Formatter("%(asctime)s SECURITY-ALERT %(levelname)s %(name)s: %(message)s"))
        handler._lms_security_alert = True  # type: ignore[attr-defined]
        alerts.addHandler(handler)

    # Alerts also reach the app-level handlers.
    alerts.propagate = True
    return alerts
