from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from .settings import AppSettings
from .storage.sessions import DisplayStateStore

LOGGER = logging.getLogger(__name__)

SESSION_PRUNE_JOB_ID = "session_prune_job"


def run_session_prune_job(settings: AppSettings, store: DisplayStateStore) -> int:
    max_idle_seconds = settings.yaml.sessions.idle_ttl_minutes * 60
    try:
        pruned = store.prune_idle_sessions(max_idle_seconds)
    except Exception:  # pragma: no cover - defensive fallback
        LOGGER.exception("Session prune job failed")
        return 0

    if pruned:
        LOGGER.info("Session prune job removed %d idle display session(s)", pruned)
    return pruned


def build_scheduler(settings: AppSettings, store: DisplayStateStore) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_session_prune_job,
        "interval",
        kwargs={"settings": settings, "store": store},
        minutes=settings.yaml.sessions.prune_interval_minutes,
        jitter=settings.yaml.sessions.jitter_seconds,
        id=SESSION_PRUNE_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    return scheduler
