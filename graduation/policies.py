"""
FILTER POLICY PRESETS

pump.fun tokens graduate at ~$69K market cap with ~$12K liquidity, i.e. a
liquidity/mcap ratio near 17%. Healthy graduates hold 15-30%; below 8% is
a strong rug signal.

Presets:
- default       balanced, used by the autopost scheduler
- aggressive    very early entries (20 minute window)
- conservative  established liquidity, strong buy pressure
"""

import logging
from typing import Dict, Optional

from .errors import ConfigurationError
from .models import FilterPolicy

logger = logging.getLogger(__name__)


DEFAULT_POLICY = FilterPolicy(
    name='default',
    min_liquidity=8000,
    min_volume_5m=200,
    min_holders=75,           # every graduate has 75+ holders
    max_age_minutes=60,
    min_liquidity_ratio=8,
    min_buy_sell_ratio=0.3,
    exclude_rugged_deployers=True,
)

AGGRESSIVE_POLICY = FilterPolicy(
    name='aggressive',
    min_liquidity=8000,
    min_volume_5m=500,
    min_holders=75,
    max_age_minutes=20,
    min_liquidity_ratio=8,
    min_buy_sell_ratio=0.3,
    exclude_rugged_deployers=True,
)

CONSERVATIVE_POLICY = FilterPolicy(
    name='conservative',
    min_liquidity=20000,
    min_volume_5m=2000,
    min_holders=150,
    max_age_minutes=120,
    min_liquidity_ratio=15,
    min_buy_sell_ratio=0.8,
    exclude_rugged_deployers=True,
)

BUILTIN_POLICIES = {
    policy.name: policy
    for policy in (DEFAULT_POLICY, AGGRESSIVE_POLICY, CONSERVATIVE_POLICY)
}


def build_policies(overrides: Optional[Dict[str, Dict]] = None) -> Dict[str, FilterPolicy]:
    """
    Built-in presets with per-name overrides applied.

    An override for an existing name replaces only the fields it lists; an
    override for a new name must list every threshold without a default.

    Raises:
        ConfigurationError: unknown field or incomplete new policy
    """
    policies = dict(BUILTIN_POLICIES)

    for name, fields in (overrides or {}).items():
        name = str(name).lower()
        fields = dict(fields or {})
        fields.pop('name', None)

        unknown = set(fields) - set(FilterPolicy.__dataclass_fields__)
        if unknown:
            raise ConfigurationError(f"Policy '{name}' has unknown fields: {sorted(unknown)}")

        base = policies.get(name)
        merged = dict(base.to_dict()) if base else {}
        merged.update(fields)
        merged['name'] = name

        try:
            policies[name] = FilterPolicy(**merged)
        except TypeError as e:
            raise ConfigurationError(f"Policy '{name}' is incomplete: {e}") from e

        logger.info(f"[POLICIES] {'Overrode' if base else 'Added'} policy '{name}'")

    return policies


def get_policy(name: str, policies: Optional[Dict[str, FilterPolicy]] = None) -> FilterPolicy:
    """Look a policy up by (case-insensitive) name."""
    policies = policies or BUILTIN_POLICIES
    try:
        return policies[name.lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown policy '{name}' (available: {', '.join(sorted(policies))})"
        ) from None
