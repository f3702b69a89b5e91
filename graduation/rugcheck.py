"""
RUGCHECK API CLIENT

Optional security enrichment (FREE, no API key):
GET https://api.rugcheck.xyz/v1/tokens/{mint}/report

Fills the TokenMetrics fields DexScreener cannot provide: mint authority,
freeze authority and LP lock status.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base_screener import BaseScreener
from .cache import TTLCache
from .errors import UpstreamError
from .models import EnrichmentResult, TokenMetrics

logger = logging.getLogger(__name__)

LP_LOCKED_THRESHOLD_PCT = 50


@dataclass
class RugCheckReport:
    score: float = 0                 # 0-100, higher = safer
    risks: List[Dict] = field(default_factory=list)
    mint_authority: Optional[str] = None
    freeze_authority: Optional[str] = None
    lp_locked: bool = False
    lp_locked_pct: float = 0.0
    top_holders: List[Dict] = field(default_factory=list)
    is_rugged: bool = False

    @classmethod
    def from_api(cls, data: Dict) -> "RugCheckReport":
        token = data.get('token') or {}
        markets = [m for m in (data.get('markets') or []) if isinstance(m, dict)]
        lp_pcts = [float((m.get('lp') or {}).get('lpLockedPct') or 0) for m in markets]

        return cls(
            score=data.get('score') or 0,
            risks=[
                {
                    'name': r.get('name', ''),
                    'description': r.get('description', ''),
                    'level': r.get('level', 'unknown'),
                    'score': r.get('score', 0),
                }
                for r in (data.get('risks') or []) if isinstance(r, dict)
            ],
            mint_authority=token.get('mintAuthority') or None,
            freeze_authority=token.get('freezeAuthority') or None,
            lp_locked=any(pct > LP_LOCKED_THRESHOLD_PCT for pct in lp_pcts),
            lp_locked_pct=max(lp_pcts, default=0.0),
            top_holders=[
                {'address': h.get('address', ''), 'pct': h.get('pct', 0)}
                for h in (data.get('topHolders') or [])[:10] if isinstance(h, dict)
            ],
            is_rugged=data.get('rugged') is True,
        )

    def apply_to(self, metrics: TokenMetrics):
        """Copy the security flags onto a metrics snapshot."""
        metrics.mint_authority = self.mint_authority is not None
        metrics.freeze_authority = self.freeze_authority is not None
        metrics.lp_locked = self.lp_locked


class RugCheckAPI(BaseScreener):
    """RugCheck report adapter."""

    source_name = "RUGCHECK"

    DEFAULT_BASE_URL = "https://api.rugcheck.xyz/v1"

    def __init__(self, config: Dict = None, cache: TTLCache = None):
        super().__init__(config)
        self.base_url = (self.config.get('base_url') or self.DEFAULT_BASE_URL).rstrip('/')
        self.cache = cache or TTLCache(
            ttl_seconds=self.config.get('rugcheck_ttl_seconds', 120),
            max_size=self.config.get('cache_max_size', 1000),
        )

    def is_configured(self) -> bool:
        return True

    async def fetch_report(self, mint: str) -> EnrichmentResult:
        cached = self.cache.get(mint)
        if cached is not None:
            return EnrichmentResult(value=cached)

        try:
            data = await self._request_json('GET', f"{self.base_url}/tokens/{mint}/report")
        except UpstreamError as e:
            logger.warning(f"[RUGCHECK] Report failed for {mint[:8]}...: {e}")
            return EnrichmentResult(error=e)

        if not isinstance(data, dict):
            error = UpstreamError(self.source_name, "malformed report")
            logger.warning(f"[RUGCHECK] {error}")
            return EnrichmentResult(error=error)

        report = RugCheckReport.from_api(data)
        self.cache.set(mint, report)
        return EnrichmentResult(value=report)
