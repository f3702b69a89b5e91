"""
GRADUATION WATCHER MODULE

Finds pump.fun tokens that graduated to Raydium, scores them and posts
the best ones to subscribed Telegram chats.

Architecture:
  DexScreener listings
          ↓
  METRICS MAPPER + HELIUS / RUGCHECK ENRICHMENT
          ↓
  FILTER POLICY  /  RISK BADGES
          ↓
  SCORER (0-10)
          ↓
  AUTOPOST SCHEDULER → Telegram
"""

from .base_screener import BaseScreener
from .cache import TTLCache
from .deduplicator import Deduplicator
from .dex_screener import DexScreenerAPI
from .errors import ConfigurationError, EnrichmentError, GraduationError, UpstreamError
from .filters import GraduationFilter
from .helius import HeliusAPI
from .models import (
    CallLog,
    DeliveryResult,
    EnrichmentResult,
    FilterPolicy,
    FilterVerdict,
    GraduationCandidate,
    GraduationInfo,
    NotifyReport,
    RecipientConfig,
    TokenMetrics,
)
from .normalizer import PairNormalizer
from .notifier import TelegramDispatcher, format_compact_signal_card, format_scan_results
from .policies import (
    AGGRESSIVE_POLICY,
    CONSERVATIVE_POLICY,
    DEFAULT_POLICY,
    build_policies,
    get_policy,
)
from .risk_badges import RiskBadgeGenerator
from .rugcheck import RugCheckAPI, RugCheckReport
from .scheduler import AutopostScheduler
from .scorer import GraduationScorer
from .storage import InMemoryRecipientStore, RecipientStore, SQLiteRecipientStore
from .watcher import GraduationWatcher

__all__ = [
    'BaseScreener',
    'TTLCache',
    'Deduplicator',
    'DexScreenerAPI',
    'HeliusAPI',
    'RugCheckAPI',
    'RugCheckReport',
    'PairNormalizer',
    'GraduationFilter',
    'GraduationScorer',
    'RiskBadgeGenerator',
    'GraduationWatcher',
    'AutopostScheduler',
    'TelegramDispatcher',
    'format_compact_signal_card',
    'format_scan_results',
    'RecipientStore',
    'InMemoryRecipientStore',
    'SQLiteRecipientStore',
    'DEFAULT_POLICY',
    'AGGRESSIVE_POLICY',
    'CONSERVATIVE_POLICY',
    'build_policies',
    'get_policy',
    'TokenMetrics',
    'GraduationInfo',
    'GraduationCandidate',
    'FilterPolicy',
    'FilterVerdict',
    'EnrichmentResult',
    'RecipientConfig',
    'CallLog',
    'DeliveryResult',
    'NotifyReport',
    'GraduationError',
    'UpstreamError',
    'EnrichmentError',
    'ConfigurationError',
]
