"""
AUTOPOST SCHEDULER

Fixed-interval timer that drives one scan-and-notify cycle per tick:

  scan_for_graduations(default policy)
          ↓
  passing candidates with score >= min_score, not seen this run
          ↓
  per recipient: quiet hours → daily cap → per-chat dedupe → send

Per-recipient state machine, re-evaluated every tick:
  ELIGIBLE → quiet_hours | daily_cap | no_candidates | dispatch

Only one cycle runs at a time. A tick that finds the previous cycle still
in flight is skipped, so two cycles never race on the same daily cap.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from .deduplicator import Deduplicator
from .models import CallLog, FilterPolicy, GraduationCandidate, NotifyReport, RecipientConfig
from .notifier import TelegramDispatcher
from .policies import DEFAULT_POLICY
from .storage import RecipientStore
from .watcher import GraduationWatcher

logger = logging.getLogger(__name__)


class AutopostScheduler:
    """
    Usage:
        scheduler = AutopostScheduler(watcher, store, dispatcher, config)
        scheduler.start()          # inside a running event loop
        ...
        scheduler.stop()
        await scheduler.wait_idle()
    """

    def __init__(self, watcher: GraduationWatcher, store: RecipientStore,
                 dispatcher: TelegramDispatcher, config: Dict = None,
                 policy: FilterPolicy = DEFAULT_POLICY,
                 deduplicator: Optional[Deduplicator] = None):
        self.config = config or {}
        self.watcher = watcher
        self.store = store
        self.dispatcher = dispatcher
        self.policy = policy
        self.deduplicator = deduplicator or Deduplicator()

        self.interval_seconds = self.config.get('interval_seconds', 60)
        self.min_score = self.config.get('min_score', 6.5)
        self.send_delay_seconds = self.config.get('send_delay_seconds', 0.5)
        self.call_log_lookback = self.config.get('call_log_lookback', 100)

        self._task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._cycle_lock = asyncio.Lock()

        self.stats = {
            'cycles': 0,
            'cycles_failed': 0,
            'ticks_skipped': 0,
            'messages_sent': 0,
            'delivery_failures': 0,
            'last_cycle_at': None,
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self):
        """Start the timer and run the first cycle immediately."""
        if self.is_running():
            logger.warning("[AUTOPOST] ⚠️ Autopost already running")
            return

        logger.info(f"[AUTOPOST] 🚀 Starting (interval {self.interval_seconds}s, "
                    f"min score {self.min_score}, policy {self.policy.name})")
        self._task = asyncio.create_task(self._run_loop(), name="autopost-timer")

    def stop(self):
        """Cancel the timer. A cycle already in flight runs to completion."""
        if self._task is not None:
            self._task.cancel()
            self._task = None
            logger.info("[AUTOPOST] 🛑 Stopped")

    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def wait_idle(self):
        """Wait for in-flight cycles (used on shutdown)."""
        if self._cycle_tasks:
            await asyncio.gather(*self._cycle_tasks, return_exceptions=True)

    async def _run_loop(self):
        while True:
            self._tick()
            await asyncio.sleep(self.interval_seconds)

    def _tick(self):
        if self._cycle_lock.locked():
            self.stats['ticks_skipped'] += 1
            logger.warning("[AUTOPOST] Previous cycle still running, skipping tick")
            return

        # separate task: cancelling the timer must not cancel the cycle
        task = asyncio.create_task(self._guarded_cycle(), name="autopost-cycle")
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)

    async def _guarded_cycle(self):
        try:
            await self.scan_and_notify()
        except Exception as e:
            self.stats['cycles_failed'] += 1
            logger.exception(f"[AUTOPOST] Cycle failed: {e}")

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def scan_and_notify(self, now: Optional[datetime] = None) -> NotifyReport:
        """Run one cycle (also the manual trigger)."""
        async with self._cycle_lock:
            return await self._cycle(now or datetime.now(timezone.utc))

    async def _cycle(self, now: datetime) -> NotifyReport:
        report = NotifyReport()
        logger.info(f"[AUTOPOST] 🔍 Scan cycle at {now.isoformat()}")

        candidates = await self.watcher.scan_for_graduations(self.policy, now=now)

        high_potential = [
            c for c in candidates
            if c.passes_filter and c.score >= self.min_score and not self.deduplicator.is_seen(c.mint)
        ]
        for candidate in high_potential:
            self.deduplicator.mark_seen(candidate.mint)
            logger.info(f"[AUTOPOST]    ${candidate.graduation.symbol} | score {candidate.score:.1f}")
        report.candidates = len(high_potential)

        recipients = await self.store.get_active_recipients()
        logger.info(f"[AUTOPOST] ✅ {len(high_potential)} new candidates, "
                    f"{len(recipients)} active chats")

        for recipient in recipients:
            try:
                await self._notify_recipient(recipient, high_potential, now, report)
            except Exception as e:
                report.skip('recipient_error')
                logger.error(f"[AUTOPOST] Chat {recipient.chat_id} failed: {e}")

        self.stats['cycles'] += 1
        self.stats['messages_sent'] += report.sent
        self.stats['delivery_failures'] += report.failed
        self.stats['last_cycle_at'] = now

        logger.info(f"[AUTOPOST] 📊 Cycle complete: {report.sent} sent, {report.failed} failed, "
                    f"skipped {report.skipped or '{}'}")
        return report

    async def _notify_recipient(self, recipient: RecipientConfig,
                                candidates: List[GraduationCandidate],
                                now: datetime, report: NotifyReport):
        chat_id = recipient.chat_id

        if self.in_quiet_hours(recipient, now.astimezone(timezone.utc).hour):
            report.skip('quiet_hours')
            logger.info(f"[AUTOPOST] 🌙 {chat_id}: quiet hours")
            return

        logs = await self.store.get_call_logs(chat_id, self.call_log_lookback)
        today = now.astimezone(timezone.utc).date()
        calls_today = sum(1 for log in logs if log.created_at.astimezone(timezone.utc).date() == today)

        if calls_today >= recipient.max_calls_per_day:
            report.skip('daily_cap')
            logger.info(f"[AUTOPOST] ⏸️ {chat_id}: daily limit reached "
                        f"({calls_today}/{recipient.max_calls_per_day})")
            return

        if not candidates:
            report.skip('no_candidates')
            return

        posted_mints = {log.mint for log in logs}

        for candidate in candidates:
            if candidate.score < recipient.min_confidence_score:
                report.skip('below_min_score')
                continue
            if candidate.mint in posted_mints:
                report.skip('already_posted')
                continue
            if calls_today >= recipient.max_calls_per_day:
                report.skip('daily_cap')
                break

            result = await self.dispatcher.send_candidate(chat_id, candidate)

            if result.ok:
                report.sent += 1
                calls_today += 1
                posted_mints.add(candidate.mint)

                await self.store.append_call_log(chat_id, CallLog(
                    chat_id=chat_id,
                    mint=candidate.mint,
                    symbol=candidate.graduation.symbol,
                    score=candidate.score,
                    created_at=now,
                    delivered=True,
                    message_id=result.message_id,
                ))
                recipient.call_count += 1
                recipient.last_call_at = now
                await self.store.save_recipient_config(recipient)

                logger.info(f"[AUTOPOST] 📤 ${candidate.graduation.symbol} → {chat_id}")
            else:
                report.failed += 1
                logger.warning(f"[AUTOPOST] ❌ ${candidate.graduation.symbol} → {chat_id}: {result.error}")

            if self.send_delay_seconds:
                await asyncio.sleep(self.send_delay_seconds)

    @staticmethod
    def in_quiet_hours(recipient: RecipientConfig, hour: int) -> bool:
        start = recipient.quiet_hours_start
        end = recipient.quiet_hours_end
        if start is None or end is None:
            return False
        if start < end:
            return start <= hour < end
        return hour >= start or hour < end

    def get_stats(self) -> Dict:
        return {
            **self.stats,
            'running': self.is_running(),
            'deduplicator': self.deduplicator.get_stats(),
        }
