"""
Background Task: Token Sweep

Periodically removes expired and already-consumed tokens from the reset and
activation stores. Validation checks expiry on every access, so the sweep
only bounds memory; correctness never waits on it.

Usage:
    scheduler = start_token_sweeper([(reset_service, 30), (activation_service, 60)])
    # ... app runs ...
    stop_token_sweeper(scheduler)
"""

import logging
from typing import Iterable, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .tokens import TokenService

logger = logging.getLogger(__name__)


def sweep_job(service: TokenService) -> None:
    """Run one sweep, logging rather than propagating failures so the job keeps its schedule."""
    try:
        service.sweep_expired()
    except Exception as e:
        logger.error(f"Error during {service.kind} token sweep: {e}", exc_info=True)


def start_token_sweeper(
    jobs: Iterable[Tuple[TokenService, int]],
) -> Optional[BackgroundScheduler]:
    """
    Start a background scheduler sweeping each service on its own interval.

    Args:
        jobs: (service, interval_minutes) pairs

    Returns:
        BackgroundScheduler instance (or None if initialization fails)
    """
    try:
        scheduler = BackgroundScheduler(daemon=True)

        for service, interval_minutes in jobs:
            scheduler.add_job(
                func=sweep_job,
                args=[service],
                trigger=IntervalTrigger(minutes=interval_minutes),
                id=f"{service.kind}_token_sweep",
                name=f"Sweep expired {service.kind} tokens",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
            )
            logger.info(f"Scheduled {service.kind} token sweep every {interval_minutes} minutes")

        scheduler.start()
        return scheduler

    except Exception as e:
        logger.error(f"Failed to start token sweeper: {e}", exc_info=True)
        return None


def stop_token_sweeper(scheduler: Optional[BackgroundScheduler]) -> None:
    if scheduler and scheduler.running:
        try:
            scheduler.shutdown(wait=False)
            logger.info("Token sweeper stopped")
        except Exception as e:
            logger.warning(f"Error stopping token sweeper: {e}")
