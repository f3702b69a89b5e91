"""
Telegram Notifier - graduation calls

- compact signal card (autopost)
- scan summary (top 5, operator view)
- TelegramDispatcher: per-chat HTML delivery that never raises
"""

import html
import logging
from typing import List, Optional

from telegram import Bot, LinkPreviewOptions
from telegram.error import BadRequest, Forbidden, RetryAfter, TelegramError

from .models import DeliveryResult, GraduationCandidate
from .normalizer import pair_float

logger = logging.getLogger(__name__)

CHAIN_ICONS = {
    'solana': "◎",
}

NO_RESULTS_MESSAGES = {
    'aggressive': "dry rn, nothing hitting the scanner 🏜️",
    'neutral': "No graduations found meeting criteria.",
    'cautious': "Nothing passing filters at the moment. Waiting.",
}

SCAN_RESULTS_SHOWN = 5


def format_num(num: float) -> str:
    """Compact number: 1.25M, 68.2K, 950."""
    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return f"{num:.0f}"


def _chain_icon(chain_id: Optional[str]) -> str:
    if not chain_id:
        return CHAIN_ICONS['solana']
    return CHAIN_ICONS.get(chain_id.lower(), "🔗")


def _liq_ratio(candidate: GraduationCandidate) -> float:
    market_cap = pair_float(candidate.pair, 'marketCap')
    liquidity = pair_float(candidate.pair, 'liquidity', 'usd')
    return liquidity / market_cap * 100 if market_cap > 0 else 0.0


def _liq_ratio_emoji(ratio: float) -> str:
    if ratio >= 15:
        return "✅"
    if ratio >= 10:
        return "⚠️"
    return "🚨"


def _score_emoji(score: float) -> str:
    if score >= 8:
        return "🔥"
    if score >= 7:
        return "✨"
    if score >= 6:
        return "👀"
    return "📊"


def _change_emoji(change: float) -> str:
    if change > 10:
        return "🚀"
    if change > 0:
        return "📈"
    if change < -10:
        return "📉"
    return ""


def format_compact_signal_card(candidate: GraduationCandidate) -> str:
    """HTML card sent by the autopost scheduler."""
    pair = candidate.pair
    price_change = pair_float(pair, 'priceChange', 'm5')
    symbol = html.escape(candidate.graduation.symbol, quote=False)
    ratio = _liq_ratio(candidate)
    sign = "+" if price_change > 0 else ""

    lines = [
        f"{_score_emoji(candidate.score)} {_chain_icon(pair.get('chainId'))} "
        f"<b>${symbol}</b> {_change_emoji(price_change)}".rstrip(),
        "",
        f"💰 ${format_num(pair_float(pair, 'marketCap'))} MCap · "
        f"💧 ${format_num(pair_float(pair, 'liquidity', 'usd'))} Liq",
        f"{_liq_ratio_emoji(ratio)} Liq/MC: {ratio:.1f}% · {sign}{price_change:.1f}%",
        f"⭐ <b>{candidate.score:.1f}/10</b>",
        "",
        f"<code>{candidate.mint}</code>",
    ]
    return "\n".join(lines)


def format_scan_results(candidates: List[GraduationCandidate], vibe_mode: str = "neutral") -> str:
    """Top 5 summary for a command-triggered scan."""
    if not candidates:
        return NO_RESULTS_MESSAGES.get(vibe_mode, NO_RESULTS_MESSAGES['neutral'])

    count = len(candidates)
    if vibe_mode == "aggressive":
        header = f"🎓 <b>{count} Fresh Grads</b>"
    else:
        header = f"📊 <b>{count} Graduation{'s' if count > 1 else ''} Found</b>"

    lines = [header, ""]
    for i, c in enumerate(candidates[:SCAN_RESULTS_SHOWN], 1):
        ratio = _liq_ratio(c)
        symbol = html.escape(c.graduation.symbol, quote=False)
        lines.append(f"<b>{i}. {_chain_icon(c.pair.get('chainId'))} ${symbol}</b> · {c.score:.1f}/10")
        lines.append(
            f"   ${format_num(pair_float(c.pair, 'marketCap'))} MC | "
            f"${format_num(pair_float(c.pair, 'liquidity', 'usd'))} Liq | "
            f"{_liq_ratio_emoji(ratio)}{ratio:.0f}%"
        )
        if c.filter_failures and not c.passes_filter:
            lines.append(f"   <i>{html.escape(c.filter_failures[0], quote=False)}</i>")
        elif c.filter_failures:
            lines.append(f"   {' '.join(c.filter_failures)}")
        lines.append("")

    if count > SCAN_RESULTS_SHOWN:
        lines.append(f"<i>+{count - SCAN_RESULTS_SHOWN} more...</i>")

    return "\n".join(lines)


class TelegramDispatcher:
    """
    Sends HTML messages to individual chats.

    Every Telegram failure is caught, logged and returned as
    DeliveryResult(ok=False); nothing is raised to the scheduler.
    """

    def __init__(self, bot_token: str = None, bot: Bot = None):
        self.bot_token = bot_token or ""
        if bot is not None:
            self.bot = bot
        elif self.bot_token:
            self.bot = Bot(token=self.bot_token)
        else:
            self.bot = None
        self.enabled = self.bot is not None

        self.stats = {
            'sent': 0,
            'failed': 0,
        }

    async def start(self):
        if self.enabled:
            await self.bot.initialize()

    async def close(self):
        if self.enabled:
            await self.bot.shutdown()

    async def send_message(self, chat_id: str, text: str) -> DeliveryResult:
        if not self.enabled:
            return DeliveryResult(ok=False, error="Telegram bot token not configured")

        try:
            message = await self.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode='HTML',
                link_preview_options=LinkPreviewOptions(is_disabled=True),
            )
        except Forbidden as e:
            self.stats['failed'] += 1
            logger.warning(f"[TELEGRAM] Bot blocked or removed from chat {chat_id}: {e}")
            return DeliveryResult(ok=False, error=str(e))
        except BadRequest as e:
            self.stats['failed'] += 1
            logger.error(f"[TELEGRAM] Bad request for chat {chat_id}: {e}")
            return DeliveryResult(ok=False, error=str(e))
        except RetryAfter as e:
            self.stats['failed'] += 1
            logger.warning(f"[TELEGRAM] Flood control for chat {chat_id}, retry after {e.retry_after}s")
            return DeliveryResult(ok=False, error=str(e))
        except TelegramError as e:
            self.stats['failed'] += 1
            logger.error(f"[TELEGRAM] Send error for chat {chat_id}: {e}")
            return DeliveryResult(ok=False, error=str(e))

        self.stats['sent'] += 1
        return DeliveryResult(ok=True, message_id=message.message_id)

    async def send_candidate(self, chat_id: str, candidate: GraduationCandidate) -> DeliveryResult:
        return await self.send_message(chat_id, format_compact_signal_card(candidate))

    def get_stats(self):
        return {**self.stats, 'enabled': self.enabled}
