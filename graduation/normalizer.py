"""
PAIR NORMALIZER

Converts a raw DexScreener pair into a TokenMetrics snapshot.

Only the fields present in the pair record are filled; holder data,
authority flags, LP lock and deployer history start at safe defaults
(0 / False / "") and are overwritten by the watcher's enrichment step.

The helpers at the bottom read nested pair fields the same way for the
filter, the scorer and the badge generator: a missing key reads as 0.
"""

from datetime import datetime, timezone
from typing import Dict, Optional

from .models import TokenMetrics

MS_PER_HOUR = 3_600_000
MS_PER_MINUTE = 60_000


class PairNormalizer:
    """Pure pair -> TokenMetrics mapping. No I/O, no state."""

    @staticmethod
    def to_metrics(pair: Dict, now: Optional[datetime] = None) -> TokenMetrics:
        base_token = pair.get('baseToken') or {}

        volume_h1 = pair_float(pair, 'volume', 'h1')
        volume_h24 = pair_float(pair, 'volume', 'h24')
        if volume_h1:
            volume_change = ((volume_h1 * 24) / (volume_h24 or 1) - 1) * 100
        else:
            volume_change = 0.0

        age_hours = pair_age_ms(pair, now) / MS_PER_HOUR

        return TokenMetrics(
            mint=base_token.get('address', ''),
            symbol=base_token.get('symbol', ''),
            name=base_token.get('name', ''),
            price=_safe_float(pair.get('priceUsd')),
            price_change_24h=pair_float(pair, 'priceChange', 'h24'),
            volume_24h=volume_h24,
            volume_change=volume_change,
            liquidity=pair_float(pair, 'liquidity', 'usd'),
            token_age_hours=age_hours,
            lp_age=age_hours,
        )


def pair_float(pair: Dict, *keys) -> float:
    """Read a nested numeric field, e.g. pair_float(pair, 'txns', 'm5', 'buys')."""
    value = pair
    for key in keys:
        if not isinstance(value, dict):
            return 0.0
        value = value.get(key)
    return _safe_float(value)


def pair_age_ms(pair: Dict, now: Optional[datetime] = None) -> float:
    """Milliseconds since pairCreatedAt; 0 when the pair has no creation time."""
    created_at = pair.get('pairCreatedAt')
    if not created_at:
        return 0.0
    now = now or datetime.now(timezone.utc)
    return now.timestamp() * 1000 - created_at


def pair_age_minutes(pair: Dict, now: Optional[datetime] = None) -> float:
    return pair_age_ms(pair, now) / MS_PER_MINUTE


def liquidity_ratio(pair: Dict) -> Optional[float]:
    """Liquidity as % of market cap, or None when either side is unknown."""
    liquidity = pair_float(pair, 'liquidity', 'usd')
    market_cap = pair_float(pair, 'marketCap')
    if liquidity > 0 and market_cap > 0:
        # multiply first: 8000 / 100000 reads as exactly 8.0
        return liquidity * 100 / market_cap
    return None


def _safe_float(value) -> float:
    if value is None:
        return 0.0
    try:
        return float(value)
    except (ValueError, TypeError):
        return 0.0
