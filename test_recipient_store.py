import os
import tempfile
import unittest
from datetime import timedelta

from graduation.models import CallLog, RecipientConfig
from graduation.storage import InMemoryRecipientStore, SQLiteRecipientStore
from pair_fixtures import NOW


def make_log(chat_id, i):
    return CallLog(chat_id=chat_id, mint=f"mint{i}", symbol=f"T{i}", score=7.0,
                   created_at=NOW + timedelta(minutes=i))


class StoreContract:
    """Behaviour both backends share. Subclasses set self.store in asyncSetUp."""

    async def test_active_recipients(self):
        await self.store.save_recipient_config(RecipientConfig(chat_id="1", autopost_enabled=True))
        await self.store.save_recipient_config(RecipientConfig(chat_id="2"))

        active = await self.store.get_active_recipients()
        self.assertEqual([r.chat_id for r in active], ["1"])

    async def test_save_is_last_write_wins(self):
        config = RecipientConfig(chat_id="-100", chat_title="Degens", autopost_enabled=True,
                                 quiet_hours_start=22, quiet_hours_end=6)
        await self.store.save_recipient_config(config)

        config.call_count = 3
        config.last_call_at = NOW
        config.min_confidence_score = 8.0
        await self.store.save_recipient_config(config)

        stored = await self.store.get_recipient("-100")
        self.assertEqual(stored.chat_title, "Degens")
        self.assertEqual(stored.call_count, 3)
        self.assertEqual(stored.last_call_at, NOW)
        self.assertEqual(stored.min_confidence_score, 8.0)
        self.assertEqual((stored.quiet_hours_start, stored.quiet_hours_end), (22, 6))
        self.assertIsNone(await self.store.get_recipient("unknown"))

    async def test_logs_newest_first_with_limit(self):
        for i in range(5):
            await self.store.append_call_log("1", make_log("1", i))
        await self.store.append_call_log("2", make_log("2", 9))

        logs = await self.store.get_call_logs("1", limit=3)
        self.assertEqual([log.mint for log in logs], ["mint4", "mint3", "mint2"])
        self.assertEqual(logs[0].created_at, NOW + timedelta(minutes=4))
        self.assertEqual(len(await self.store.get_call_logs("1")), 5)

    async def test_stats(self):
        await self.store.save_recipient_config(RecipientConfig(chat_id="1", autopost_enabled=True))
        await self.store.append_call_log("1", make_log("1", 0))

        stats = await self.store.get_stats()
        self.assertEqual(stats['chats'], 1)
        self.assertEqual(stats['active_chats'], 1)
        self.assertEqual(stats['call_logs'], 1)


class TestInMemoryRecipientStore(StoreContract, unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.store = InMemoryRecipientStore()

    async def test_logs_capped_per_chat(self):
        for i in range(105):
            await self.store.append_call_log("1", make_log("1", i))

        logs = await self.store.get_call_logs("1", limit=500)
        self.assertEqual(len(logs), 100)
        self.assertEqual(logs[0].mint, "mint104")
        self.assertEqual(logs[-1].mint, "mint5")


class TestSQLiteRecipientStore(StoreContract, unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self._tmp.name, 'data', 'recipients.db')
        self.store = SQLiteRecipientStore(self.db_path)

    async def asyncTearDown(self):
        self._tmp.cleanup()

    async def test_creates_directory_and_persists(self):
        self.assertTrue(os.path.exists(self.db_path))

        await self.store.save_recipient_config(RecipientConfig(chat_id="1", autopost_enabled=True))
        await self.store.append_call_log("1", make_log("1", 0))

        reopened = SQLiteRecipientStore(self.db_path)
        self.assertTrue((await reopened.get_recipient("1")).autopost_enabled)
        self.assertEqual(len(await reopened.get_call_logs("1")), 1)


if __name__ == '__main__':
    unittest.main()
