from __future__ import annotations

import logging
from datetime import datetime, time, tzinfo
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_SWEEP_TIME, SWEEP_JOB_ID, SWEEP_MISFIRE_GRACE_SECONDS
from ..core.enums import SweeperState
from .engine import AttendanceEngine
from .model import SweepResult

logger = logging.getLogger(__name__)


def sweep_trigger(at: time = DEFAULT_SWEEP_TIME, tz: Optional[tzinfo] = None) -> CronTrigger:
    """Daily cron trigger at ``at`` wall-clock time; ``tz`` None means the host zone."""
    return CronTrigger(hour=at.hour, minute=at.minute, timezone=tz)


def next_sweep_at(now: datetime, at: time = DEFAULT_SWEEP_TIME, tz: Optional[tzinfo] = None) -> datetime:
    """Next occurrence of ``at`` strictly after ``now``.

    The cron trigger works on calendar fields, so the sweep stays at 04:00
    local across daylight-saving changes.
    """
    # Passing ``now`` as the previous fire time makes an exact match roll to tomorrow.
    return sweep_trigger(at, tz).get_next_fire_time(now, now)


class SweepScheduler:
    """Signs everyone out once a day from an APScheduler background thread.

    Waiting -> Sweeping -> Waiting until ``stop()``. A failed sweep is logged
    and the job stays scheduled for the next day.
    """

    def __init__(
        self,
        engine: AttendanceEngine,
        *,
        at: time = DEFAULT_SWEEP_TIME,
        tz: Optional[tzinfo] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._engine = engine
        self._at = at
        self._tz = tz
        self._clock = clock or (lambda: now_local(tz))
        self._trigger = sweep_trigger(at, tz)
        self._scheduler: Optional[BackgroundScheduler] = None
        self.state = SweeperState.IDLE
        self.last_result: Optional[SweepResult] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def trigger(self) -> CronTrigger:
        return self._trigger

    def next_run(self, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        return self._trigger.get_next_fire_time(now, now)

    def start(self) -> None:
        if self.running:
            return
        scheduler = BackgroundScheduler(
            timezone=self._trigger.timezone,
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": SWEEP_MISFIRE_GRACE_SECONDS},
        )
        scheduler.add_job(self.run_job, self._trigger, id=SWEEP_JOB_ID, name="Nightly sign-out", replace_existing=True)
        scheduler.start()
        self._scheduler = scheduler
        self.state = SweeperState.WAITING
        logger.info("Nightly sign-out scheduled daily at %s", self._at.strftime("%H:%M"))

    def stop(self, wait: bool = True) -> None:
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=wait)
            self._scheduler = None
        self.state = SweeperState.STOPPED

    def scheduled_for(self) -> Optional[datetime]:
        """Fire time of the live job, or None when not started."""
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(SWEEP_JOB_ID)
        return job.next_run_time if job else None

    def run_job(self) -> Optional[SweepResult]:
        """Scheduler entry point; never lets an exception reach APScheduler."""
        try:
            return self.sweep()
        except Exception:
            logger.exception("Nightly sweep failed")
            return None
        finally:
            if self.state is not SweeperState.STOPPED:
                self.state = SweeperState.WAITING if self.running else SweeperState.IDLE

    def sweep(self, now: Optional[datetime] = None) -> SweepResult:
        self.state = SweeperState.SWEEPING
        try:
            result = self._engine.force_sign_out_all(now or self._clock())
        finally:
            self.state = SweeperState.IDLE
        if result.count:
            logger.info("Nightly Cleanup: force signed out %d people", result.count)
        for failure in result.failures:
            logger.warning("Nightly Cleanup: no session stored for %s (%s)", failure.tag_id, failure.reason)
        self.last_result = result
        return result
