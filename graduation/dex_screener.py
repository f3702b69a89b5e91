"""
DEXSCREENER API CLIENT

Primary listing source for pump.fun graduations (FREE, no API key).

pump.fun tokens that complete their bonding curve migrate to Raydium, so
every listing call is restricted to chainId == "solana" and
dexId == "raydium" and deduplicated by base-token address.

Endpoints used:
- /token-boosts/top/v1           recently boosted tokens (activity-biased)
- /token-profiles/latest/v1      latest token profiles (fallback)
- /latest/dex/tokens/{a,b,...}   pairs for up to 10 token addresses
- /latest/dex/pairs/solana       latest pairs (creation-biased)
- /latest/dex/search?q=          free-text search
"""

import logging
from typing import Dict, List, Optional

from .base_screener import BaseScreener
from .cache import TTLCache
from .errors import UpstreamError

logger = logging.getLogger(__name__)


class DexScreenerAPI(BaseScreener):
    """
    DexScreener adapter.

    Public methods never raise: upstream failures are logged, stored on
    last_error and turned into [] / None.
    """

    source_name = "DEXSCREENER"

    DEFAULT_BASE_URL = "https://api.dexscreener.com"
    TARGET_CHAIN = "solana"
    TARGET_DEX = "raydium"
    BATCH_SIZE = 10
    MAX_BOOSTED_TOKENS = 20

    def __init__(self, config: Dict = None, cache: TTLCache = None):
        super().__init__(config)
        self.base_url = (self.config.get('base_url') or self.DEFAULT_BASE_URL).rstrip('/')
        self.cache = cache or TTLCache(
            ttl_seconds=self.config.get('listings_ttl_seconds', 30),
            max_size=self.config.get('cache_max_size', 100),
        )
        self.last_error: Optional[str] = None

    def is_configured(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def fetch_recent_listings(self, limit: int = 50) -> List[Dict]:
        """
        Recently active graduated pairs, newest pair first.

        Collects pairs for boosted tokens first and tops up from the latest
        token profiles when fewer than `limit` pairs were found. A failed
        step is skipped; whatever was already collected is kept.
        """
        cache_key = ('recent', limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        self.last_error = None
        all_pairs: List[Dict] = []

        try:
            boosts = await self._request_json('GET', f"{self.base_url}/token-boosts/top/v1")
            addresses = self._solana_addresses(boosts)[:min(limit, self.MAX_BOOSTED_TOKENS)]
            all_pairs.extend(await self._fetch_pairs_for_tokens(addresses))
        except UpstreamError as e:
            self._record_error(e)

        if len(all_pairs) < limit:
            try:
                profiles = await self._request_json('GET', f"{self.base_url}/token-profiles/latest/v1")
                addresses = self._solana_addresses(profiles)[:limit - len(all_pairs)]
                all_pairs.extend(await self._fetch_pairs_for_tokens(addresses))
            except UpstreamError as e:
                self._record_error(e)

        graduated = self._restrict_to_target(all_pairs)
        graduated.sort(key=lambda p: p.get('pairCreatedAt') or 0, reverse=True)
        result = graduated[:limit]

        if result or self.last_error is None:
            self.cache.set(cache_key, result)

        logger.info(f"[DEXSCREENER] Recent listings: {len(result)} graduated pairs "
                    f"({len(all_pairs)} raw)")
        return list(result)

    async def fetch_latest_listings(self, limit: int = 50) -> List[Dict]:
        """Newest Raydium pairs on Solana, in DexScreener's (newest first) order."""
        cache_key = ('latest', limit)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return list(cached)

        self.last_error = None
        try:
            data = await self._request_json(
                'GET', f"{self.base_url}/latest/dex/pairs/{self.TARGET_CHAIN}"
            )
            pairs = self._pairs_from(data)
        except UpstreamError as e:
            self._record_error(e)
            return []

        result = self._restrict_to_target(pairs)[:limit]
        self.cache.set(cache_key, result)

        logger.info(f"[DEXSCREENER] Latest listings: {len(result)} graduated pairs")
        return list(result)

    async def fetch_pair_by_mint(self, mint: str) -> Optional[Dict]:
        """Most liquid Raydium pair for a token, or None."""
        try:
            data = await self._request_json('GET', f"{self.base_url}/latest/dex/tokens/{mint}")
            pairs = self._pairs_from(data)
        except UpstreamError as e:
            self._record_error(e)
            return None

        candidates = [p for p in pairs if self._is_target(p)]
        if not candidates:
            return None

        candidates.sort(key=lambda p: _liquidity_usd(p), reverse=True)
        return candidates[0]

    async def search_tokens(self, query: str) -> List[Dict]:
        """Free-text search restricted to graduated Raydium pairs."""
        try:
            data = await self._request_json(
                'GET', f"{self.base_url}/latest/dex/search", params={'q': query}
            )
            pairs = self._pairs_from(data)
        except UpstreamError as e:
            self._record_error(e)
            return []

        return [p for p in pairs if self._is_target(p)]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _fetch_pairs_for_tokens(self, addresses: List[str]) -> List[Dict]:
        """Fetch pairs in batches of 10 addresses; a failed batch is skipped."""
        pairs: List[Dict] = []
        for i in range(0, len(addresses), self.BATCH_SIZE):
            batch = addresses[i:i + self.BATCH_SIZE]
            try:
                data = await self._request_json(
                    'GET', f"{self.base_url}/latest/dex/tokens/{','.join(batch)}"
                )
                pairs.extend(self._pairs_from(data))
            except UpstreamError as e:
                self._record_error(e)
        return pairs

    def _solana_addresses(self, data) -> List[str]:
        if not isinstance(data, list):
            raise UpstreamError(self.source_name, "expected a list of tokens")
        return [
            t['tokenAddress'] for t in data
            if isinstance(t, dict) and t.get('chainId') == self.TARGET_CHAIN and t.get('tokenAddress')
        ]

    def _pairs_from(self, data) -> List[Dict]:
        if not isinstance(data, dict):
            raise UpstreamError(self.source_name, "expected an object with 'pairs'")
        pairs = data.get('pairs') or []
        return [p for p in pairs if isinstance(p, dict)]

    def _is_target(self, pair: Dict) -> bool:
        return pair.get('dexId') == self.TARGET_DEX and pair.get('chainId') == self.TARGET_CHAIN

    def _restrict_to_target(self, pairs: List[Dict]) -> List[Dict]:
        """Keep Raydium/Solana pairs, first occurrence per base token."""
        seen_mints = set()
        result = []
        for pair in pairs:
            if not self._is_target(pair):
                continue
            mint = (pair.get('baseToken') or {}).get('address')
            if not mint or mint in seen_mints:
                continue
            seen_mints.add(mint)
            result.append(pair)
        return result

    def _record_error(self, error: UpstreamError):
        self.last_error = str(error)
        logger.warning(f"[DEXSCREENER] {error}")


def _liquidity_usd(pair: Dict) -> float:
    return float((pair.get('liquidity') or {}).get('usd') or 0)
