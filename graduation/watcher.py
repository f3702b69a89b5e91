"""
GRADUATION WATCHER

Orchestrates one scan:

  DexScreener listings
          ↓
  PairNormalizer.to_metrics()
          ↓
  Helius holder enrichment (+ optional RugCheck)   concurrent, bounded
          ↓
  GraduationFilter / RiskBadgeGenerator
          ↓
  GraduationScorer
          ↓
  sorted GraduationCandidate list

Three modes:
- scan_for_graduations   activity-biased listings, every candidate kept, by score
- scan_fresh_graduations creation-biased listings, passing only, newest first
- scan_all_graduations   creation-biased listings, badges instead of failures
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional

from .dex_screener import DexScreenerAPI
from .errors import EnrichmentError
from .filters import GraduationFilter
from .helius import HeliusAPI
from .models import (
    EnrichmentResult, FilterPolicy, GraduationCandidate, GraduationInfo, TokenMetrics,
)
from .normalizer import PairNormalizer, pair_age_minutes, pair_float
from .risk_badges import RiskBadgeGenerator
from .rugcheck import RugCheckAPI
from .scorer import GraduationScorer

logger = logging.getLogger(__name__)

# Fallbacks when holder enrichment fails. Filtered scans assume a typical
# fresh graduate (100 holders, 25% top-10); the unfiltered scan shows "unknown".
FILTERED_SCAN_HOLDERS_DEFAULT = 100
FILTERED_SCAN_CONCENTRATION_DEFAULT = 25.0
UNFILTERED_SCAN_HOLDERS_DEFAULT = 0
UNFILTERED_SCAN_CONCENTRATION_DEFAULT = 0.0


class GraduationWatcher:
    """
    Scans DexScreener for pump.fun graduates and turns them into scored
    candidates.

    Usage:
        watcher = GraduationWatcher(dex, helius)
        candidates = await watcher.scan_for_graduations(DEFAULT_POLICY)
        if not candidates and watcher.last_scan_error:
            ...  # upstream failure, not an empty market
    """

    def __init__(self, dex: DexScreenerAPI, helius: HeliusAPI,
                 rugcheck: Optional[RugCheckAPI] = None, config: Dict = None):
        self.config = config or {}
        self.dex = dex
        self.helius = helius
        self.rugcheck = rugcheck

        self.recent_fetch_limit = self.config.get('recent_fetch_limit', 100)
        self.latest_fetch_limit = self.config.get('latest_fetch_limit', 50)
        self.top_holders_n = self.config.get('top_holders_n', 10)
        self.max_concurrent_enrichments = self.config.get('max_concurrent_enrichments', 8)
        self.enrichment_timeout = self.config.get('enrichment_timeout_seconds', 10)
        self.rugcheck_enabled = bool(self.config.get('rugcheck_enabled', False) and rugcheck)

        self.normalizer = PairNormalizer()
        self.filter = GraduationFilter()
        self.scorer = GraduationScorer()
        self.badges = RiskBadgeGenerator()

        self._seen_mints = set()
        self._subscribers: Dict[str, Callable] = {}

        self.last_scan_error: Optional[str] = None
        self.stats = {
            'scans': 0,
            'pairs_fetched': 0,
            'candidates_emitted': 0,
            'enrichment_failures': 0,
            'last_scan_at': None,
        }

    # ------------------------------------------------------------------
    # Scan modes
    # ------------------------------------------------------------------

    async def scan_for_graduations(self, policy: FilterPolicy,
                                   now: Optional[datetime] = None) -> List[GraduationCandidate]:
        """Every graduate, filtered and scored, highest score first."""
        now = now or datetime.now(timezone.utc)
        logger.info(f"[WATCHER] Starting scan (policy: {policy.name})")

        pairs = await self.dex.fetch_recent_listings(self.recent_fetch_limit)
        self._record_fetch(pairs)

        metrics_list = await self._enrich_all(
            pairs, now,
            FILTERED_SCAN_HOLDERS_DEFAULT, FILTERED_SCAN_CONCENTRATION_DEFAULT,
        )

        candidates = []
        for pair, metrics in zip(pairs, metrics_list):
            verdict = self.filter.apply(pair, metrics, policy, now)
            candidates.append(self._build_candidate(
                pair, metrics, verdict.passes, verdict.failures, now
            ))

        candidates.sort(key=lambda c: c.score, reverse=True)

        await self._notify_subscribers(candidates)
        for candidate in candidates:
            self._seen_mints.add(candidate.mint)

        self._record_emit(candidates)
        logger.info(f"[WATCHER] Scan complete: {len(candidates)} candidates, "
                    f"{sum(1 for c in candidates if c.passes_filter)} passing")
        return candidates

    async def scan_fresh_graduations(self, policy: FilterPolicy,
                                     now: Optional[datetime] = None) -> List[GraduationCandidate]:
        """Only fresh graduates that pass the policy, newest first."""
        now = now or datetime.now(timezone.utc)
        logger.info(f"[WATCHER] Starting FRESH scan (policy: {policy.name})")

        pairs = await self.dex.fetch_latest_listings(self.latest_fetch_limit)
        self._record_fetch(pairs)

        # age check before enrichment saves Helius calls
        pairs = [p for p in pairs if pair_age_minutes(p, now) <= policy.max_age_minutes]

        metrics_list = await self._enrich_all(
            pairs, now,
            FILTERED_SCAN_HOLDERS_DEFAULT, FILTERED_SCAN_CONCENTRATION_DEFAULT,
        )

        candidates = []
        for pair, metrics in zip(pairs, metrics_list):
            verdict = self.filter.apply(pair, metrics, policy, now)
            if verdict.passes:
                candidates.append(self._build_candidate(pair, metrics, True, [], now))

        candidates.sort(key=lambda c: c.pair_created_at, reverse=True)

        self._record_emit(candidates)
        logger.info(f"[WATCHER] FRESH scan complete: {len(candidates)} passing of {len(pairs)} young pairs")
        return candidates

    async def scan_all_graduations(self, max_age_minutes: float = 120,
                                   now: Optional[datetime] = None) -> List[GraduationCandidate]:
        """
        Every young graduate with warning badges attached.

        Only hard rejects (drained liquidity or >80% top-10 concentration)
        are dropped. filter_failures carries the badges.
        """
        now = now or datetime.now(timezone.utc)
        logger.info(f"[WATCHER] Starting ALL GRADS scan (max age {max_age_minutes}m)")

        pairs = await self.dex.fetch_latest_listings(self.latest_fetch_limit)
        self._record_fetch(pairs)

        pairs = [p for p in pairs if pair_age_minutes(p, now) <= max_age_minutes]

        metrics_list = await self._enrich_all(
            pairs, now,
            UNFILTERED_SCAN_HOLDERS_DEFAULT, UNFILTERED_SCAN_CONCENTRATION_DEFAULT,
        )

        candidates = []
        for pair, metrics in zip(pairs, metrics_list):
            if self.badges.is_hard_reject(pair, metrics):
                logger.debug(f"[WATCHER] Hard reject: {metrics.symbol} ({metrics.mint[:8]}...)")
                continue
            warnings = self.badges.generate(pair, metrics)
            candidates.append(self._build_candidate(pair, metrics, True, warnings, now))

        candidates.sort(key=lambda c: c.pair_created_at, reverse=True)

        self._record_emit(candidates)
        logger.info(f"[WATCHER] ALL GRADS scan complete: {len(candidates)} shown")
        return candidates

    # ------------------------------------------------------------------
    # Seen set & subscribers
    # ------------------------------------------------------------------

    @property
    def seen_mints(self) -> FrozenSet[str]:
        return frozenset(self._seen_mints)

    def clear_seen_mints(self):
        self._seen_mints.clear()

    def subscribe(self, subscriber_id: str, callback: Callable):
        """
        Register a callback for new passing candidates of the standard scan.

        The callback may be a plain function or a coroutine function.
        """
        self._subscribers[subscriber_id] = callback

    def unsubscribe(self, subscriber_id: str):
        self._subscribers.pop(subscriber_id, None)

    async def _notify_subscribers(self, candidates: List[GraduationCandidate]):
        if not self._subscribers:
            return

        fresh = [c for c in candidates if c.passes_filter and c.mint not in self._seen_mints]
        for candidate in fresh:
            for subscriber_id, callback in list(self._subscribers.items()):
                try:
                    result = callback(candidate)
                    if asyncio.iscoroutine(result):
                        await result
                except Exception as e:
                    logger.error(f"[WATCHER] Subscriber {subscriber_id} failed: {e}")

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    async def _enrich_all(self, pairs: List[Dict], now: datetime,
                          holders_default: int, concentration_default: float) -> List[TokenMetrics]:
        """Enrich every pair concurrently, preserving input order."""
        if not pairs:
            return []

        semaphore = asyncio.Semaphore(self.max_concurrent_enrichments)

        async def enrich(pair: Dict) -> TokenMetrics:
            async with semaphore:
                return await self._enrich(pair, now, holders_default, concentration_default)

        return list(await asyncio.gather(*(enrich(pair) for pair in pairs)))

    async def _enrich(self, pair: Dict, now: datetime,
                      holders_default: int, concentration_default: float) -> TokenMetrics:
        metrics = self.normalizer.to_metrics(pair, now)
        mint = metrics.mint

        holders, concentration = await asyncio.gather(
            self._bounded(mint, self.helius.fetch_holder_count(mint)),
            self._bounded(mint, self.helius.fetch_top_holder_concentration(mint, self.top_holders_n)),
        )
        if not holders.ok or not concentration.ok:
            self.stats['enrichment_failures'] += 1

        # a zero reading is treated like a failed call
        metrics.holders = int(holders.value_or(0) or holders_default)
        metrics.top_holder_concentration = float(concentration.value_or(0) or concentration_default)

        if self.rugcheck_enabled:
            report = await self._bounded(mint, self.rugcheck.fetch_report(mint))
            if report.ok:
                report.value.apply_to(metrics)

        return metrics

    async def _bounded(self, mint: str, coro) -> EnrichmentResult:
        try:
            return await asyncio.wait_for(coro, timeout=self.enrichment_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[WATCHER] Enrichment timed out for {mint[:8]}...")
            return EnrichmentResult(error=EnrichmentError(mint, "timeout"))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_candidate(self, pair: Dict, metrics: TokenMetrics, passes: bool,
                         failures: List[str], now: datetime) -> GraduationCandidate:
        created_at = pair.get('pairCreatedAt')
        graduated_at = (
            datetime.fromtimestamp(created_at / 1000, tz=timezone.utc) if created_at else now
        )
        info = pair.get('info') or {}

        graduation = GraduationInfo(
            mint=metrics.mint,
            symbol=metrics.symbol,
            name=metrics.name,
            graduated_at=graduated_at,
            raydium_pair_address=pair.get('pairAddress', ''),
            initial_liquidity=pair_float(pair, 'liquidity', 'usd'),
            initial_market_cap=pair_float(pair, 'marketCap'),
            image_url=info.get('imageUrl'),
        )

        return GraduationCandidate(
            graduation=graduation,
            pair=pair,
            metrics=metrics,
            score=self.scorer.score(pair, metrics),
            passes_filter=passes,
            filter_failures=list(failures),
        )

    def _record_fetch(self, pairs: List[Dict]):
        self.stats['scans'] += 1
        self.stats['pairs_fetched'] += len(pairs)
        self.stats['last_scan_at'] = datetime.now(timezone.utc)
        # partial results with a failed secondary fetch still count as healthy
        self.last_scan_error = self.dex.last_error if not pairs else None
        if self.last_scan_error:
            logger.error(f"[WATCHER] Listing source failed: {self.last_scan_error}")

    def _record_emit(self, candidates: List[GraduationCandidate]):
        self.stats['candidates_emitted'] += len(candidates)

    def get_stats(self) -> Dict:
        return {
            **self.stats,
            'seen_mints': len(self._seen_mints),
            'subscribers': len(self._subscribers),
            'last_scan_error': self.last_scan_error,
            'filter': self.filter.get_stats(),
        }

    async def close(self):
        for adapter in (self.dex, self.helius, self.rugcheck):
            if adapter is not None:
                await adapter.close()
