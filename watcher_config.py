"""
GRADUATION WATCHER CONFIGURATION

Tunables for the pump.fun → Raydium graduation watcher and the Telegram
autopost loop. Credentials and URLs live in config.py (.env).

API COMPLIANCE:
- DexScreener FREE API, listings cached 30s
- Helius DAS, holder data cached 60s
- RugCheck FREE API, reports cached 120s (disabled by default)
"""

from config import (
    DEXSCREENER_BASE_URL,
    HELIUS_API_URL,
    HELIUS_RPC_URL,
    RUGCHECK_BASE_URL,
)

GRADUATION_WATCHER_CONFIG = {
    'dexscreener': {
        'base_url': DEXSCREENER_BASE_URL,
        'request_timeout_seconds': 10,
        'min_request_interval_seconds': 0.2,
    },

    'helius': {
        'rpc_url': HELIUS_RPC_URL,
        'api_url': HELIUS_API_URL,
        'max_holder_pages': 10,
        'request_timeout_seconds': 10,
    },

    'rugcheck': {
        'base_url': RUGCHECK_BASE_URL,
        'request_timeout_seconds': 10,
    },

    # ================================================================
    # CACHE TTLs (seconds)
    # ================================================================
    'cache': {
        'listings_ttl_seconds': 30,
        'holders_ttl_seconds': 60,
        'rugcheck_ttl_seconds': 120,
        'max_size': 1000,
    },

    # ================================================================
    # WATCHER
    # ================================================================
    'watcher': {
        'recent_fetch_limit': 100,
        'latest_fetch_limit': 50,
        'top_holders_n': 10,
        'max_concurrent_enrichments': 8,
        'enrichment_timeout_seconds': 10,
        'rugcheck_enabled': False,
    },

    # ================================================================
    # AUTOPOST
    # ================================================================
    'autopost': {
        'interval_seconds': 60,
        'min_score': 6.5,
        'send_delay_seconds': 0.5,
        'call_log_lookback': 100,
        'policy': 'default',
    },

    'deduplication': {
        'max_seen_tokens': 500,
    },
}


def get_watcher_config():
    """Get the full graduation watcher configuration."""
    return GRADUATION_WATCHER_CONFIG


def get_dexscreener_config():
    return {
        **GRADUATION_WATCHER_CONFIG['dexscreener'],
        'listings_ttl_seconds': GRADUATION_WATCHER_CONFIG['cache']['listings_ttl_seconds'],
        'cache_max_size': GRADUATION_WATCHER_CONFIG['cache']['max_size'],
    }


def get_helius_config():
    return {
        **GRADUATION_WATCHER_CONFIG['helius'],
        'holders_ttl_seconds': GRADUATION_WATCHER_CONFIG['cache']['holders_ttl_seconds'],
        'cache_max_size': GRADUATION_WATCHER_CONFIG['cache']['max_size'],
    }


def get_rugcheck_config():
    return {
        **GRADUATION_WATCHER_CONFIG['rugcheck'],
        'rugcheck_ttl_seconds': GRADUATION_WATCHER_CONFIG['cache']['rugcheck_ttl_seconds'],
        'cache_max_size': GRADUATION_WATCHER_CONFIG['cache']['max_size'],
    }


def get_autopost_config():
    return GRADUATION_WATCHER_CONFIG['autopost']


def get_deduplication_config():
    return GRADUATION_WATCHER_CONFIG['deduplication']
