"""
HTTP Entry Point for Budgetal

Run with:
    python -m app.main
or:
    uvicorn app.main:create_app --factory --port 3000

Configuration comes from the environment / .env (see .env.example).
Without BUDGETAL_DB_URL the service uses ./budgetal.db (SQLite).

The application is only built once configuration has been checked,
so a bad setting is reported per section instead of failing the import.
"""

import sys

import structlog
import uvicorn

from budgetal.api import create_app
from budgetal.config import get_settings, validate_all_settings


logger = structlog.get_logger("budgetal.main")


def check_configuration() -> bool:
    """Log every settings section that fails to load."""
    status = validate_all_settings()

    sections = [
        ("Database", "database"),
        ("Budget provisioning", "budget"),
        ("Authentication", "auth"),
        ("Application", "app"),
    ]

    ok = True
    for label, key in sections:
        if not status.get(key):
            logger.error("invalid_configuration", section=label, error=status.get(f"{key}_error"))
            ok = False
    return ok


def main():
    """Main application entry point."""
    if not check_configuration():
        sys.exit(1)

    settings = get_settings().app
    uvicorn.run(
        "app.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug_mode,
    )


if __name__ == "__main__":
    main()
