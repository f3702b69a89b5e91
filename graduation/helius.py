"""
HELIUS API CLIENT

Holder enrichment for graduated tokens, over the Helius RPC endpoint:
- holder count        DAS getTokenAccounts, paged until a short page
- top-N holders       getTokenLargestAccounts (sorted by balance)
- total supply        getTokenSupply (denominator for holder shares)

Every public call returns an EnrichmentResult instead of raising. A missing
API key or an invalid mint is detected before any network call.
"""

import logging
from typing import Dict, List

from solders.pubkey import Pubkey

from .base_screener import BaseScreener
from .cache import TTLCache
from .errors import ConfigurationError, EnrichmentError, UpstreamError
from .models import EnrichmentResult

logger = logging.getLogger(__name__)

# DAS page size upper bound
HOLDER_PAGE_SIZE = 1000
# getTokenLargestAccounts returns at most 20 accounts
MAX_LARGEST_ACCOUNTS = 20


class HeliusAPI(BaseScreener):
    """Helius RPC / REST adapter."""

    source_name = "HELIUS"

    DEFAULT_RPC_URL = "https://mainnet.helius-rpc.com"
    DEFAULT_API_URL = "https://api.helius.xyz"

    def __init__(self, api_key: str = None, config: Dict = None, cache: TTLCache = None):
        super().__init__(config)
        self.api_key = api_key or ""
        self.rpc_url = (self.config.get('rpc_url') or self.DEFAULT_RPC_URL).rstrip('/')
        self.api_url = (self.config.get('api_url') or self.DEFAULT_API_URL).rstrip('/')
        self.max_holder_pages = self.config.get('max_holder_pages', 10)
        self.cache = cache or TTLCache(
            ttl_seconds=self.config.get('holders_ttl_seconds', 60),
            max_size=self.config.get('cache_max_size', 1000),
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def fetch_holder_count(self, mint: str) -> EnrichmentResult:
        """
        Number of distinct owners with a non-zero balance.

        DAS reports `total` per page, so pages are walked until one comes
        back short. The count stops at
        max_holder_pages * 1000 accounts.
        """
        precheck = self._precheck(mint)
        if precheck is not None:
            return precheck

        cache_key = ('holders', mint)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return EnrichmentResult(value=cached)

        owners = set()
        try:
            for page in range(1, self.max_holder_pages + 1):
                result = await self._rpc('getTokenAccounts', {
                    'mint': mint,
                    'page': page,
                    'limit': HOLDER_PAGE_SIZE,
                    'showZeroBalance': False,
                })
                accounts = [a for a in (result.get('token_accounts') or []) if isinstance(a, dict)]
                owners.update(a.get('owner') or a.get('address') for a in accounts)
                if len(accounts) < HOLDER_PAGE_SIZE:
                    break
            else:
                logger.debug(f"[HELIUS] Holder count for {mint[:8]}... capped at "
                             f"{self.max_holder_pages} pages")
        except UpstreamError as e:
            logger.warning(f"[HELIUS] Holder count failed for {mint[:8]}...: {e}")
            return EnrichmentResult(error=e)

        owners.discard(None)
        holder_count = len(owners)
        self.cache.set(cache_key, holder_count)
        return EnrichmentResult(value=holder_count)

    async def fetch_token_supply(self, mint: str) -> EnrichmentResult:
        """Total supply in base units (raw integer amount)."""
        precheck = self._precheck(mint)
        if precheck is not None:
            return precheck

        cache_key = ('supply', mint)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return EnrichmentResult(value=cached)

        try:
            result = await self._rpc('getTokenSupply', [mint])
        except UpstreamError as e:
            logger.warning(f"[HELIUS] Supply failed for {mint[:8]}...: {e}")
            return EnrichmentResult(error=e)

        supply = _raw_amount((result.get('value') or {}).get('amount'))
        if supply <= 0:
            return EnrichmentResult(error=EnrichmentError(mint, "supply unavailable"))

        self.cache.set(cache_key, supply)
        return EnrichmentResult(value=supply)

    async def fetch_top_holders(self, mint: str, top_n: int = 10) -> EnrichmentResult:
        """
        Largest token accounts for a mint, biggest first.

        Returns:
            EnrichmentResult whose value is a list of
            {'address': str, 'amount': int, 'percentage': float}
            with percentage of total supply. Fails when the supply is
            unknown.
        """
        precheck = self._precheck(mint)
        if precheck is not None:
            return precheck

        cache_key = ('top_holders', mint, top_n)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return EnrichmentResult(value=cached)

        supply = await self.fetch_token_supply(mint)
        if not supply.ok:
            return supply

        try:
            result = await self._rpc('getTokenLargestAccounts', [mint])
        except UpstreamError as e:
            logger.warning(f"[HELIUS] Top holders failed for {mint[:8]}...: {e}")
            return EnrichmentResult(error=e)

        accounts = [a for a in (result.get('value') or []) if isinstance(a, dict)]
        accounts.sort(key=lambda a: _raw_amount(a.get('amount')), reverse=True)

        holders: List[Dict] = []
        for account in accounts[:min(top_n, MAX_LARGEST_ACCOUNTS)]:
            amount = _raw_amount(account.get('amount'))
            holders.append({
                'address': account.get('address', ''),
                'amount': amount,
                'percentage': amount * 100 / supply.value,
            })

        self.cache.set(cache_key, holders)
        return EnrichmentResult(value=holders)

    async def fetch_top_holder_concentration(self, mint: str, top_n: int = 10) -> EnrichmentResult:
        """Percent of total supply held by the top N accounts."""
        holders = await self.fetch_top_holders(mint, top_n)
        if not holders.ok:
            return holders
        return EnrichmentResult(value=sum(h['percentage'] for h in holders.value))

    async def fetch_token_metadata(self, mint: str) -> EnrichmentResult:
        """Raw token metadata record from /v0/token-metadata."""
        precheck = self._precheck(mint)
        if precheck is not None:
            return precheck

        cache_key = ('metadata', mint)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return EnrichmentResult(value=cached)

        try:
            data = await self._request_json(
                'POST', f"{self.api_url}/v0/token-metadata",
                params={'api-key': self.api_key},
                json={'mintAccounts': [mint]},
            )
        except UpstreamError as e:
            logger.warning(f"[HELIUS] Metadata failed for {mint[:8]}...: {e}")
            return EnrichmentResult(error=e)

        if not isinstance(data, list) or not data:
            return EnrichmentResult(error=EnrichmentError(mint, "empty metadata response"))

        self.cache.set(cache_key, data[0])
        return EnrichmentResult(value=data[0])

    # ------------------------------------------------------------------

    def _precheck(self, mint: str):
        """Failed result for a missing key or invalid mint, else None."""
        if not self.is_configured():
            return EnrichmentResult(error=ConfigurationError("HELIUS_API_KEY not set"))

        try:
            Pubkey.from_string(mint)
        except (ValueError, TypeError):
            logger.debug(f"[HELIUS] Invalid mint skipped: {mint!r}")
            return EnrichmentResult(error=EnrichmentError(str(mint), "invalid mint address"))

        return None

    async def _rpc(self, method: str, params) -> Dict:
        """One JSON-RPC call; returns `result` or raises UpstreamError."""
        data = await self._request_json(
            'POST', f"{self.rpc_url}/",
            params={'api-key': self.api_key},
            json={
                'jsonrpc': '2.0',
                'id': method,
                'method': method,
                'params': params,
            },
        )

        if not isinstance(data, dict):
            raise UpstreamError(self.source_name, "malformed RPC response")
        if data.get('error'):
            raise UpstreamError(self.source_name, f"RPC error: {data['error']}")

        result = data.get('result')
        if not isinstance(result, dict):
            raise UpstreamError(self.source_name, f"{method} response has no result")
        return result


def _raw_amount(value) -> int:
    # RPC amounts are base-unit strings, DAS amounts are integers
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0
