"""
RISK BADGES

Advisory warnings for the "show everything" scan. Thresholds are looser
than the filter's; only is_hard_reject() keeps a token out entirely.
"""

from typing import Dict, List

from .models import TokenMetrics
from .normalizer import pair_float

HARD_REJECT_MAX_LIQ_RATIO = 3
HARD_REJECT_MIN_CONCENTRATION = 80


class RiskBadgeGenerator:

    @staticmethod
    def _liq_ratio(pair: Dict) -> float:
        market_cap = pair_float(pair, 'marketCap')
        liquidity = pair_float(pair, 'liquidity', 'usd')
        return liquidity / market_cap * 100 if market_cap > 0 else 0.0

    def generate(self, pair: Dict, metrics: TokenMetrics) -> List[str]:
        badges = []
        liq_ratio = self._liq_ratio(pair)
        liquidity = pair_float(pair, 'liquidity', 'usd')
        buys = pair_float(pair, 'txns', 'm5', 'buys')
        sells = pair_float(pair, 'txns', 'm5', 'sells')

        if 0 < liq_ratio < 5:
            badges.append("🚨 Liq drained (<5%)")
        elif 0 < liq_ratio < 8:
            badges.append("⚠️ Low liq ratio (<8%)")

        if metrics.top_holder_concentration > 60:
            badges.append("🚨 Top 10 hold >60%")
        elif metrics.top_holder_concentration > 40:
            badges.append("⚠️ Top 10 hold >40%")

        if pair_float(pair, 'volume', 'm5') == 0 and pair_float(pair, 'volume', 'h1') == 0:
            badges.append("💀 No volume")

        if sells > 0 and buys > 0 and buys / sells < 0.3:
            badges.append("🔴 Heavy sell pressure")

        if 0 < liquidity < 5000:
            badges.append("⚠️ Low liq (<$5K)")

        info = pair.get('info') or {}
        if not info.get('socials') and not info.get('websites'):
            badges.append("👻 No socials")

        return badges

    def is_hard_reject(self, pair: Dict, metrics: TokenMetrics) -> bool:
        liq_ratio = self._liq_ratio(pair)
        return (
            0 < liq_ratio < HARD_REJECT_MAX_LIQ_RATIO
            or metrics.top_holder_concentration > HARD_REJECT_MIN_CONCENTRATION
        )
