"""
ClinicFlow - patient pathway state machine and priority queueing core.

Builds the shared patient registry that the registration, triage, physician
and ER workflows write through.
"""
import logging

from .core.config import settings
from .core.logging_setup import setup_logging
from .seed_demo import seed_demo_data
from .services.advisory import AdvisoryService
from .services.registry import PatientRegistry

logger = logging.getLogger(__name__)


def create_registry(seed_demo: bool = False) -> PatientRegistry:
    setup_logging(settings.LOG_LEVEL)
    registry = PatientRegistry()
    if seed_demo:
        seed_demo_data(registry)
    logger.info("%s %s ready with %d episode(s)", settings.APP_NAME, settings.VERSION, len(registry))
    return registry


def create_advisory(registry: PatientRegistry) -> AdvisoryService:
    return AdvisoryService(registry)
