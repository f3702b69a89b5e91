"""
Shared DexScreener pair / candidate builders for the test modules.
"""

from datetime import datetime, timezone

from graduation.models import GraduationCandidate, GraduationInfo, TokenMetrics

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)

# valid base58 public keys
MINT_A = "So11111111111111111111111111111111111111112"
MINT_B = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"
MINT_C = "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB"
MINT_D = "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263"


def make_pair(mint=MINT_A, symbol="GRAD", liquidity=15000, market_cap=100000,
              volume_m5=500, volume_h1=3000, volume_h24=10000,
              buys=20, sells=10, price_change_m5=5, age_minutes=30,
              dex_id="raydium", chain_id="solana", socials=True,
              price_usd="0.0001", pair_address=None):
    pair = {
        'chainId': chain_id,
        'dexId': dex_id,
        'pairAddress': pair_address or f"pair-{mint[:6]}",
        'url': f"https://dexscreener.com/solana/{mint}",
        'baseToken': {'address': mint, 'symbol': symbol, 'name': f"{symbol} Token"},
        'priceUsd': price_usd,
        'liquidity': {'usd': liquidity},
        'marketCap': market_cap,
        'volume': {'m5': volume_m5, 'h1': volume_h1, 'h24': volume_h24},
        'priceChange': {'m5': price_change_m5, 'h1': 0, 'h24': 0},
        'txns': {'m5': {'buys': buys, 'sells': sells}},
        'pairCreatedAt': NOW_MS - int(age_minutes * 60_000),
        'info': {},
    }
    if socials:
        pair['info']['socials'] = [{'type': 'twitter', 'url': 'https://x.com/grad'}]
    return pair


def make_metrics(mint=MINT_A, holders=150, concentration=25.0):
    return TokenMetrics(
        mint=mint, symbol="GRAD", name="GRAD Token",
        holders=holders, top_holder_concentration=concentration,
    )


def make_candidate(mint=MINT_A, score=7.5, passes=True, symbol="GRAD", age_minutes=30):
    pair = make_pair(mint=mint, symbol=symbol, age_minutes=age_minutes)
    graduation = GraduationInfo(
        mint=mint,
        symbol=symbol,
        name=f"{symbol} Token",
        graduated_at=NOW,
        raydium_pair_address=pair['pairAddress'],
        initial_liquidity=15000,
        initial_market_cap=100000,
    )
    return GraduationCandidate(
        graduation=graduation,
        pair=pair,
        metrics=make_metrics(mint),
        score=score,
        passes_filter=passes,
        filter_failures=[] if passes else ["Liquidity $100 < $8000"],
    )
