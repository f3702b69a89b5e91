"""
GRADUATION SCORER

0-10 heuristic score. Base 5, additive factors, clamped to [0, 10].

Liquidity/mcap ratio is weighted highest: graduates start near 17%, so a
drained pool (< 5%) costs 3 points.
"""

from typing import Dict

from .models import TokenMetrics
from .normalizer import liquidity_ratio, pair_float

BASE_SCORE = 5.0
MIN_SCORE = 0.0
MAX_SCORE = 10.0


class GraduationScorer:

    def score(self, pair: Dict, metrics: TokenMetrics) -> float:
        raw = BASE_SCORE + sum(self.breakdown(pair, metrics).values())
        return max(MIN_SCORE, min(MAX_SCORE, raw))

    def breakdown(self, pair: Dict, metrics: TokenMetrics) -> Dict[str, float]:
        """Per-factor contributions, before the base score and clamping."""
        return {
            'volume_momentum': self._volume_momentum(pair),
            'liquidity': self._liquidity_tier(pair),
            'buy_sell_ratio': self._buy_sell(pair),
            'price_momentum': self._price_momentum(pair),
            'market_cap': self._market_cap(pair),
            'liquidity_ratio': self._liquidity_ratio(pair),
            'holders': self._holders(metrics),
            'concentration': self._concentration(metrics),
        }

    @staticmethod
    def _volume_momentum(pair: Dict) -> float:
        # 5m volume against the average 5m slice of the last hour
        volume_5m = pair_float(pair, 'volume', 'm5')
        hourly_avg = pair_float(pair, 'volume', 'h1') / 12
        if volume_5m > hourly_avg * 2:
            return 1.5
        if volume_5m > hourly_avg * 1.5:
            return 1.0
        if volume_5m < hourly_avg * 0.5:
            return -1.0
        return 0.0

    @staticmethod
    def _liquidity_tier(pair: Dict) -> float:
        liquidity = pair_float(pair, 'liquidity', 'usd')
        if liquidity > 50_000:
            return 1.0
        if liquidity > 20_000:
            return 0.5
        if liquidity < 5_000:
            return -1.0
        return 0.0

    @staticmethod
    def _buy_sell(pair: Dict) -> float:
        buys = pair_float(pair, 'txns', 'm5', 'buys')
        sells = pair_float(pair, 'txns', 'm5', 'sells')
        if sells > 0:
            ratio = buys / sells
        else:
            ratio = 2.0 if buys > 0 else 1.0

        if ratio > 2:
            return 1.0
        if ratio > 1.5:
            return 0.5
        if ratio < 0.5:
            return -1.5
        return 0.0

    @staticmethod
    def _price_momentum(pair: Dict) -> float:
        change_5m = pair_float(pair, 'priceChange', 'm5')
        if change_5m > 20:
            return 1.0
        if change_5m > 10:
            return 0.5
        if change_5m < -20:
            return -1.0
        return 0.0

    @staticmethod
    def _market_cap(pair: Dict) -> float:
        market_cap = pair_float(pair, 'marketCap')
        if 100_000 <= market_cap < 5_000_000:
            return 0.5
        if market_cap > 10_000_000:
            return -0.5
        return 0.0

    @staticmethod
    def _liquidity_ratio(pair: Dict) -> float:
        ratio = liquidity_ratio(pair)
        if ratio is None:
            return 0.0
        if ratio >= 20:
            return 2.0
        if ratio >= 15:
            return 1.5
        if ratio >= 10:
            return 0.5
        if ratio < 5:
            return -3.0
        if ratio < 8:
            return -2.0
        return 0.0

    @staticmethod
    def _holders(metrics: TokenMetrics) -> float:
        holders = metrics.holders
        if holders > 200:
            return 1.0
        if holders > 100:
            return 0.5
        if 0 < holders < 30:
            return -0.5
        return 0.0

    @staticmethod
    def _concentration(metrics: TokenMetrics) -> float:
        concentration = metrics.top_holder_concentration
        if concentration <= 0:
            return 0.0
        if concentration < 20:
            return 1.0
        if concentration < 35:
            return 0.5
        if concentration > 60:
            return -1.0
        if concentration > 45:
            return -0.5
        return 0.0
