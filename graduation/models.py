"""
GRADUATION MODELS

Data records shared by the watcher, the filters, the scorer and the
autopost scheduler.

MarketPair is NOT modelled here: DexScreener pairs are consumed as the raw
dict returned by the API (see PairNormalizer for the fields that are read).
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


@dataclass
class TokenMetrics:
    """Normalized per-token snapshot built fresh on every scan pass."""
    mint: str
    symbol: str
    name: str
    price: float = 0.0
    price_change_24h: float = 0.0
    volume_24h: float = 0.0
    volume_change: float = 0.0
    liquidity: float = 0.0
    liquidity_change: float = 0.0
    holders: int = 0                      # 0 = unknown
    holders_change: float = 0.0
    top_holder_concentration: float = 0.0  # % held by top 10, 0 = unknown
    token_age_hours: float = 0.0
    mint_authority: bool = False
    freeze_authority: bool = False
    lp_locked: bool = False
    lp_age: float = 0.0
    deployer_address: str = ""
    deployer_prior_tokens: int = 0
    deployer_rug_count: int = 0


@dataclass(frozen=True)
class GraduationInfo:
    """Bonding-curve graduation event as seen from the Raydium pair."""
    mint: str
    symbol: str
    name: str
    graduated_at: datetime
    raydium_pair_address: str
    initial_liquidity: float
    initial_market_cap: float
    image_url: Optional[str] = None


@dataclass(frozen=True)
class GraduationCandidate:
    """One token emitted by a watcher scan."""
    graduation: GraduationInfo
    pair: Dict[str, Any]
    metrics: TokenMetrics
    score: float
    passes_filter: bool
    filter_failures: List[str] = field(default_factory=list)

    @property
    def mint(self) -> str:
        return self.graduation.mint

    @property
    def pair_created_at(self) -> int:
        return self.pair.get('pairCreatedAt') or 0


@dataclass(frozen=True)
class FilterPolicy:
    """Named threshold bundle evaluated by GraduationFilter."""
    name: str
    min_liquidity: float
    min_volume_5m: float
    min_holders: int
    max_age_minutes: float
    min_liquidity_ratio: float = 8.0
    min_buy_sell_ratio: float = 0.3
    exclude_rugged_deployers: bool = True

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class FilterVerdict:
    passes: bool
    failures: List[str]


@dataclass
class EnrichmentResult:
    """
    Outcome of one enrichment call.

    The adapters never raise; callers collapse a failed result to a
    documented default with value_or().
    """
    value: Any = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.value is not None

    def value_or(self, default):
        return self.value if self.ok else default


@dataclass
class RecipientConfig:
    """Per-chat autopost settings, owned by the RecipientStore."""
    chat_id: str
    chat_title: str = "Telegram Chat"
    autopost_enabled: bool = False
    min_confidence_score: float = 6.5
    max_calls_per_day: int = 10
    quiet_hours_start: Optional[int] = None  # UTC hour
    quiet_hours_end: Optional[int] = None    # UTC hour
    call_count: int = 0
    last_call_at: Optional[datetime] = None
    vibe_mode: str = "neutral"

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['last_call_at'] = self.last_call_at.isoformat() if self.last_call_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "RecipientConfig":
        data = dict(data)
        last_call_at = data.get('last_call_at')
        if isinstance(last_call_at, str):
            data['last_call_at'] = _parse_datetime(last_call_at)
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class CallLog:
    """One candidate dispatched to one chat. Append-only."""
    chat_id: str
    mint: str
    symbol: str
    score: float
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    delivered: bool = True
    message_id: Optional[int] = None
    triggered_by: str = "auto"

    def to_dict(self) -> Dict:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "CallLog":
        data = dict(data)
        if isinstance(data.get('created_at'), str):
            data['created_at'] = _parse_datetime(data['created_at'])
        data['delivered'] = bool(data.get('delivered', True))
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class DeliveryResult:
    ok: bool
    message_id: Optional[int] = None
    error: Optional[str] = None


@dataclass
class NotifyReport:
    """Summary of one scan-and-notify cycle."""
    sent: int = 0
    candidates: int = 0
    failed: int = 0
    skipped: Dict[str, int] = field(default_factory=dict)

    def skip(self, reason: str):
        self.skipped[reason] = self.skipped.get(reason, 0) + 1


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
