"""
GRADUATION FILTER

Evaluates a pair against a FilterPolicy. Every rule is checked; every
failing rule adds one message carrying the measured value and the
threshold, e.g. "Liquidity $4200 < $8000".

Rules:
1. liquidity >= min_liquidity
2. 5m volume >= min_volume_5m
3. age (minutes) <= max_age_minutes
4. holders >= min_holders, only when the holder count is known (> 0)
5. top 10 concentration <= 50% (fixed ceiling)
6. liquidity/mcap >= min_liquidity_ratio, when both are known
7. 5m buys/sells >= min_buy_sell_ratio, when there were sells
8. mcap > $5M in the first 15 minutes needs 1h volume >= 10% of mcap
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from .models import FilterPolicy, FilterVerdict, TokenMetrics
from .normalizer import liquidity_ratio, pair_age_minutes, pair_float

logger = logging.getLogger(__name__)

MAX_TOP_HOLDER_CONCENTRATION = 50
WASH_TRADING_MIN_MCAP = 5_000_000
WASH_TRADING_MAX_AGE_MINUTES = 15
WASH_TRADING_MIN_VOLUME_SHARE = 0.1


class GraduationFilter:
    """Policy evaluation with per-rule rejection counters."""

    RULES = (
        'liquidity', 'volume_5m', 'age', 'holders',
        'concentration', 'liquidity_ratio', 'buy_sell_ratio', 'wash_trading',
    )

    def __init__(self):
        self.stats = {
            'total_evaluated': 0,
            'passed': 0,
            'rejected': {rule: 0 for rule in self.RULES},
        }

    def apply(self, pair: Dict, metrics: TokenMetrics, policy: FilterPolicy,
              now: Optional[datetime] = None) -> FilterVerdict:
        failures = []
        failed_rules = []

        def fail(rule: str, message: str):
            failed_rules.append(rule)
            failures.append(message)

        liquidity = pair_float(pair, 'liquidity', 'usd')
        volume_5m = pair_float(pair, 'volume', 'm5')
        market_cap = pair_float(pair, 'marketCap')
        age_minutes = pair_age_minutes(pair, now)

        if liquidity < policy.min_liquidity:
            fail('liquidity', f"Liquidity ${liquidity:.0f} < ${_num(policy.min_liquidity)}")

        if volume_5m < policy.min_volume_5m:
            fail('volume_5m', f"5m volume ${volume_5m:.0f} < ${_num(policy.min_volume_5m)}")

        if age_minutes > policy.max_age_minutes:
            fail('age', f"Age {age_minutes:.0f}m > {_num(policy.max_age_minutes)}m")

        # 0 = unknown (enrichment failed), never a rejection on its own
        if 0 < metrics.holders < policy.min_holders:
            fail('holders', f"Holders {metrics.holders} < {_num(policy.min_holders)}")

        if metrics.top_holder_concentration > MAX_TOP_HOLDER_CONCENTRATION:
            fail('concentration',
                 f"Top 10 holders own {metrics.top_holder_concentration:.1f}% (high concentration)")

        ratio = liquidity_ratio(pair)
        if ratio is not None and ratio < policy.min_liquidity_ratio:
            fail('liquidity_ratio',
                 f"Liq/MCap {ratio:.1f}% < {_num(policy.min_liquidity_ratio)}% (scam risk)")

        buys = pair_float(pair, 'txns', 'm5', 'buys')
        sells = pair_float(pair, 'txns', 'm5', 'sells')
        if sells > 0:
            buy_sell_ratio = buys / sells
            if buy_sell_ratio < policy.min_buy_sell_ratio:
                fail('buy_sell_ratio',
                     f"Buy/Sell ratio {buy_sell_ratio:.2f} < {_num(policy.min_buy_sell_ratio)} "
                     f"(dump in progress)")

        if market_cap > WASH_TRADING_MIN_MCAP and age_minutes < WASH_TRADING_MAX_AGE_MINUTES:
            volume_1h = pair_float(pair, 'volume', 'h1')
            if volume_1h < market_cap * WASH_TRADING_MIN_VOLUME_SHARE:
                fail('wash_trading',
                     f"MCap ${market_cap / 1000:.0f}k with low volume, possible wash trading")

        self._record(failed_rules)
        if failures:
            logger.debug(f"[FILTER] {metrics.symbol or metrics.mint[:8]} rejected "
                         f"({policy.name}): {'; '.join(failures)}")

        return FilterVerdict(passes=not failures, failures=failures)

    def _record(self, failed_rules):
        self.stats['total_evaluated'] += 1
        if not failed_rules:
            self.stats['passed'] += 1
        for rule in failed_rules:
            self.stats['rejected'][rule] += 1

    def get_stats(self) -> Dict:
        total = self.stats['total_evaluated']
        return {
            **self.stats,
            'rejected': dict(self.stats['rejected']),
            'pass_rate_pct': (self.stats['passed'] / total * 100) if total else 0,
        }


def _num(value) -> str:
    """8000.0 -> '8000', 0.3 -> '0.3'."""
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)
