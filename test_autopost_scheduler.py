import asyncio
import unittest
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from graduation.models import CallLog, DeliveryResult, RecipientConfig
from graduation.scheduler import AutopostScheduler
from graduation.storage import InMemoryRecipientStore
from pair_fixtures import MINT_A, MINT_B, MINT_C, MINT_D, NOW, make_candidate


def make_watcher(candidates):
    watcher = MagicMock()
    watcher.scan_for_graduations = AsyncMock(return_value=candidates)
    return watcher


def make_dispatcher():
    dispatcher = MagicMock()
    dispatcher.send_candidate = AsyncMock(return_value=DeliveryResult(ok=True, message_id=1))
    return dispatcher


def log_for(chat_id, mint, created_at):
    return CallLog(chat_id=chat_id, mint=mint, symbol="OLD", score=7.0, created_at=created_at)


class TestAutopostScheduler(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = InMemoryRecipientStore()
        self.dispatcher = make_dispatcher()
        self.candidates = [
            make_candidate(mint=MINT_A, score=8.0, symbol="AAA"),
            make_candidate(mint=MINT_B, score=7.0, symbol="BBB"),
            make_candidate(mint=MINT_C, score=6.0, symbol="LOW"),
            make_candidate(mint=MINT_D, score=9.0, passes=False, symbol="FAIL"),
        ]
        self.watcher = make_watcher(self.candidates)

    def make_scheduler(self, **config):
        config.setdefault('send_delay_seconds', 0)
        return AutopostScheduler(self.watcher, self.store, self.dispatcher, config)

    async def add_recipient(self, chat_id="-100", **fields):
        recipient = RecipientConfig(chat_id=chat_id, autopost_enabled=True, **fields)
        await self.store.save_recipient_config(recipient)
        return recipient

    def sent_mints(self):
        return [call.args[1].mint for call in self.dispatcher.send_candidate.await_args_list]

    async def test_sends_high_potential_and_records_calls(self):
        await self.add_recipient()
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.candidates, 2)
        self.assertEqual(report.sent, 2)
        self.assertEqual(self.sent_mints(), [MINT_A, MINT_B])

        logs = await self.store.get_call_logs("-100")
        self.assertEqual([log.mint for log in logs], [MINT_B, MINT_A])
        self.assertTrue(all(log.created_at == NOW for log in logs))

        recipient = await self.store.get_recipient("-100")
        self.assertEqual(recipient.call_count, 2)
        self.assertEqual(recipient.last_call_at, NOW)

    async def test_inactive_recipients_ignored(self):
        await self.store.save_recipient_config(RecipientConfig(chat_id="off"))
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.sent, 0)
        self.dispatcher.send_candidate.assert_not_awaited()

    async def test_quiet_hours_skip(self):
        await self.add_recipient(quiet_hours_start=11, quiet_hours_end=13)
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.skipped, {'quiet_hours': 1})
        self.dispatcher.send_candidate.assert_not_awaited()

    def test_quiet_hours_window(self):
        overnight = RecipientConfig(chat_id="1", quiet_hours_start=22, quiet_hours_end=6)
        for hour, quiet in ((23, True), (2, True), (22, True), (6, False), (12, False)):
            self.assertEqual(AutopostScheduler.in_quiet_hours(overnight, hour), quiet, hour)

        daytime = RecipientConfig(chat_id="1", quiet_hours_start=9, quiet_hours_end=17)
        self.assertTrue(AutopostScheduler.in_quiet_hours(daytime, 9))
        self.assertFalse(AutopostScheduler.in_quiet_hours(daytime, 17))

        self.assertFalse(AutopostScheduler.in_quiet_hours(RecipientConfig(chat_id="1"), 3))

        # equal bounds wrap around the whole day
        always = RecipientConfig(chat_id="1", quiet_hours_start=5, quiet_hours_end=5)
        self.assertTrue(all(AutopostScheduler.in_quiet_hours(always, h) for h in range(24)))

    async def test_daily_cap_counts_today_only(self):
        await self.add_recipient("today", max_calls_per_day=2)
        await self.add_recipient("yesterday", max_calls_per_day=2)
        for i in range(2):
            await self.store.append_call_log("today", log_for("today", f"old{i}", NOW - timedelta(hours=1)))
            await self.store.append_call_log("yesterday", log_for("yesterday", f"old{i}", NOW - timedelta(days=1)))

        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.skipped.get('daily_cap'), 1)
        sent_to = {call.args[0] for call in self.dispatcher.send_candidate.await_args_list}
        self.assertEqual(sent_to, {"yesterday"})

    async def test_daily_cap_reached_mid_cycle(self):
        await self.add_recipient(max_calls_per_day=1)
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.sent, 1)
        self.assertEqual(report.skipped, {'daily_cap': 1})
        self.assertEqual(self.sent_mints(), [MINT_A])

    async def test_already_posted_to_chat(self):
        await self.add_recipient()
        await self.store.append_call_log("-100", log_for("-100", MINT_A, NOW - timedelta(days=2)))

        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(self.sent_mints(), [MINT_B])
        self.assertEqual(report.skipped, {'already_posted': 1})

    async def test_recipient_min_score(self):
        await self.add_recipient(min_confidence_score=7.5)
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(self.sent_mints(), [MINT_A])
        self.assertEqual(report.skipped, {'below_min_score': 1})

    async def test_candidates_not_repeated_across_cycles(self):
        await self.add_recipient()
        scheduler = self.make_scheduler()

        await scheduler.scan_and_notify(now=NOW)
        report = await scheduler.scan_and_notify(now=NOW + timedelta(minutes=1))

        self.assertEqual(report.candidates, 0)
        self.assertEqual(report.skipped, {'no_candidates': 1})
        self.assertEqual(self.dispatcher.send_candidate.await_count, 2)

    async def test_delivery_failure_does_not_stop_other_chats(self):
        await self.add_recipient("blocked")
        await self.add_recipient("ok")

        async def send(chat_id, candidate):
            if chat_id == "blocked":
                return DeliveryResult(ok=False, error="Forbidden: bot was blocked by the user")
            return DeliveryResult(ok=True, message_id=7)

        self.dispatcher.send_candidate = AsyncMock(side_effect=send)
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.failed, 2)
        self.assertEqual(report.sent, 2)
        self.assertEqual(await self.store.get_call_logs("blocked"), [])
        self.assertEqual((await self.store.get_recipient("blocked")).call_count, 0)

    async def test_recipient_error_is_contained(self):
        await self.add_recipient("broken")
        await self.add_recipient("ok")

        async def send(chat_id, candidate):
            if chat_id == "broken":
                raise RuntimeError("unexpected")
            return DeliveryResult(ok=True, message_id=7)

        self.dispatcher.send_candidate = AsyncMock(side_effect=send)
        report = await self.make_scheduler().scan_and_notify(now=NOW)

        self.assertEqual(report.skipped, {'recipient_error': 1})
        self.assertEqual(report.sent, 2)

    async def test_tick_skipped_while_cycle_runs(self):
        scheduler = self.make_scheduler()

        async with scheduler._cycle_lock:
            scheduler._tick()

        self.assertEqual(scheduler.stats['ticks_skipped'], 1)
        self.assertEqual(scheduler._cycle_tasks, set())

    async def test_start_twice_warns(self):
        scheduler = self.make_scheduler()
        scheduler.start()
        try:
            with self.assertLogs('graduation.scheduler', level='WARNING') as logs:
                scheduler.start()
            self.assertIn("Autopost already running", logs.output[0])
            self.assertTrue(scheduler.is_running())
        finally:
            scheduler.stop()
            await scheduler.wait_idle()

    async def test_stop_lets_inflight_cycle_finish(self):
        await self.add_recipient()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_scan(policy, now=None):
            started.set()
            await release.wait()
            return [make_candidate(mint=MINT_A, score=8.0)]

        self.watcher.scan_for_graduations = slow_scan
        scheduler = self.make_scheduler()

        scheduler.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        scheduler.stop()
        self.assertFalse(scheduler.is_running())

        release.set()
        await scheduler.wait_idle()

        self.assertEqual(self.sent_mints(), [MINT_A])
        self.assertEqual(scheduler.stats['cycles'], 1)

    async def test_failed_scan_is_logged_not_raised(self):
        self.watcher.scan_for_graduations = AsyncMock(side_effect=RuntimeError("scan exploded"))
        scheduler = self.make_scheduler()

        with self.assertLogs('graduation.scheduler', level='ERROR'):
            await scheduler._guarded_cycle()

        self.assertEqual(scheduler.stats['cycles_failed'], 1)


if __name__ == '__main__':
    unittest.main()
