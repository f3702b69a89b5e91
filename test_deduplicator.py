import unittest

from graduation.deduplicator import Deduplicator


class TestDeduplicator(unittest.TestCase):

    def test_seen_after_mark(self):
        dedup = Deduplicator()
        self.assertFalse(dedup.is_seen("mintA"))

        dedup.mark_seen("mintA")
        dedup.mark_seen("mintA")

        self.assertTrue(dedup.is_seen("mintA"))
        self.assertIn("mintA", dedup)
        self.assertEqual(len(dedup), 1)
        self.assertEqual(dedup.get_stats()['duplicates'], 1)

    def test_oldest_evicted_first(self):
        dedup = Deduplicator({'max_seen_tokens': 3})
        for mint in ("a", "b", "c", "d"):
            dedup.mark_seen(mint)

        self.assertNotIn("a", dedup)
        self.assertTrue(all(m in dedup for m in ("b", "c", "d")))
        self.assertEqual(dedup.get_stats()['evictions'], 1)

    def test_clear(self):
        dedup = Deduplicator()
        dedup.mark_seen("a")
        dedup.clear()
        self.assertFalse(dedup.is_seen("a"))


if __name__ == '__main__':
    unittest.main()
