"""
Application startup validation and initialization.

This module performs startup checks so configuration problems and an
unreachable document store are reported before requests are served.
"""

import logging
import sys
from typing import List, Tuple

from core.config import get_settings
from core.database import get_client
from modules.reporting.services.report_registry import get_registry

logger = logging.getLogger(__name__)


class StartupValidator:
    """Validates application startup requirements"""

    def __init__(self):
        self.settings = get_settings()
        self.errors: List[str] = []
        self.warnings: List[str] = []

    async def check_database_connection(self) -> bool:
        """Check document store connectivity"""
        try:
            await get_client().admin.command("ping")
            logger.info("MongoDB connection successful")
            return True
        except Exception as e:
            message = f"MongoDB connection failed: {str(e)}"
            if self.settings.is_production:
                self.errors.append(message)
                return False
            self.warnings.append(message)
            return True

    def check_report_configuration(self) -> bool:
        """Validate report limits and the report catalog"""
        if self.settings.report_default_page_size > self.settings.report_max_page_size:
            self.errors.append("REPORT_DEFAULT_PAGE_SIZE must not exceed REPORT_MAX_PAGE_SIZE")
            return False
        try:
            registry = get_registry()
        except ValueError as e:
            self.errors.append(f"Report catalog is invalid: {str(e)}")
            return False
        logger.info(f"{len(registry)} reports registered in {len(registry.categories())} categories")
        return True

    async def validate_all(self) -> Tuple[bool, List[str], List[str]]:
        """Run all validation checks"""
        all_passed = self.check_report_configuration()
        if not await self.check_database_connection():
            all_passed = False
        return all_passed, self.errors, self.warnings


async def run_startup_checks():
    """Run all startup validation checks"""
    settings = get_settings()
    logger.info("=" * 60)
    logger.info("Starting inventory reporting backend")
    logger.info(f"Environment: {settings.environment}")
    logger.info("=" * 60)

    validator = StartupValidator()
    passed, errors, warnings = await validator.validate_all()

    for warning in warnings:
        logger.warning(f"Startup warning: {warning}")
    for error in errors:
        logger.error(f"Startup error: {error}")

    if not passed and settings.is_production:
        logger.error("Cannot start in production with errors!")
        sys.exit(1)
    elif not passed:
        logger.warning("Starting in development mode despite errors")
    else:
        logger.info("All startup checks passed")

    return passed, warnings


def configure_logging():
    """Configure application logging"""
    logging.basicConfig(
        level=getattr(logging, get_settings().log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
