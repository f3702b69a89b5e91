import unittest

from graduation.models import TokenMetrics
from graduation.scorer import GraduationScorer
from pair_fixtures import make_metrics, make_pair


class TestGraduationScorer(unittest.TestCase):

    def setUp(self):
        self.scorer = GraduationScorer()

    def test_empty_pair(self):
        metrics = TokenMetrics(mint="m", symbol="S", name="N")
        # only the "< $5K liquidity" penalty applies
        self.assertEqual(self.scorer.score({}, metrics), 4.0)
        self.assertEqual(self.scorer.breakdown({}, metrics)['liquidity'], -1.0)

    def test_typical_graduate(self):
        # ratio 15% +1.5, mcap 100k +0.5, 5m volume exactly 2x the hourly slice +1,
        # buys/sells 2.0 +0.5, holders 150 +0.5, top 10 25% +0.5
        score = self.scorer.score(make_pair(), make_metrics())
        self.assertAlmostEqual(score, 9.5)

    def test_breakdown_sums_to_raw_score(self):
        pair = make_pair(liquidity=3000, market_cap=200000, volume_m5=10,
                         buys=1, sells=10, price_change_m5=-30)
        metrics = make_metrics(holders=20, concentration=70)
        breakdown = self.scorer.breakdown(pair, metrics)

        self.assertEqual(breakdown['liquidity_ratio'], -3.0)
        self.assertEqual(breakdown['buy_sell_ratio'], -1.5)
        self.assertAlmostEqual(5 + sum(breakdown.values()), -3.5)

    def test_clamped_to_zero(self):
        pair = make_pair(liquidity=3000, market_cap=200000, volume_m5=10,
                         buys=1, sells=10, price_change_m5=-30)
        self.assertEqual(self.scorer.score(pair, make_metrics(holders=20, concentration=70)), 0.0)

    def test_clamped_to_ten(self):
        pair = make_pair(liquidity=60000, market_cap=250000, volume_m5=2000, volume_h1=6000,
                         buys=30, sells=10, price_change_m5=25)
        self.assertEqual(self.scorer.score(pair, make_metrics(holders=250, concentration=15)), 10.0)

    def test_drained_ratio_only_gets_heaviest_penalty(self):
        pair = make_pair(liquidity=4000, market_cap=100000)
        self.assertEqual(self.scorer.breakdown(pair, make_metrics())['liquidity_ratio'], -3.0)

        pair = make_pair(liquidity=6000, market_cap=100000)
        self.assertEqual(self.scorer.breakdown(pair, make_metrics())['liquidity_ratio'], -2.0)

    def test_unknown_holder_data_is_neutral(self):
        breakdown = self.scorer.breakdown(make_pair(), make_metrics(holders=0, concentration=0))
        self.assertEqual(breakdown['holders'], 0.0)
        self.assertEqual(breakdown['concentration'], 0.0)

    def test_buys_without_sells(self):
        pair = make_pair(buys=5, sells=0)
        # ratio reads as 2 → not > 2, but > 1.5
        self.assertEqual(self.scorer.breakdown(pair, make_metrics())['buy_sell_ratio'], 0.5)

    def test_score_always_in_range(self):
        extremes = [
            make_pair(liquidity=1e12, market_cap=1e9, volume_m5=1e12, buys=1e6, sells=1,
                      price_change_m5=1e6),
            make_pair(liquidity=1, market_cap=1e12, volume_m5=0, volume_h1=1e12,
                      buys=0, sells=1e6, price_change_m5=-1e6),
        ]
        for pair in extremes:
            score = self.scorer.score(pair, make_metrics(holders=10**9, concentration=99.9))
            self.assertGreaterEqual(score, 0.0)
            self.assertLessEqual(score, 10.0)


if __name__ == '__main__':
    unittest.main()
