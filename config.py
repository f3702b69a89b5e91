import os
import yaml
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Telegram configuration
TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
# Optional: chat seeded into the store with autopost enabled on startup
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")

# Data sources
HELIUS_API_KEY = os.getenv("HELIUS_API_KEY", "")
DEXSCREENER_BASE_URL = os.getenv("DEXSCREENER_BASE_URL", "https://api.dexscreener.com")
HELIUS_RPC_URL = os.getenv("HELIUS_RPC_URL", "https://mainnet.helius-rpc.com")
HELIUS_API_URL = os.getenv("HELIUS_API_URL", "https://api.helius.xyz")
RUGCHECK_BASE_URL = os.getenv("RUGCHECK_BASE_URL", "https://api.rugcheck.xyz/v1")

# Recipient store (empty = in-memory, lost on restart)
AUTOPOST_DB_PATH = os.getenv("AUTOPOST_DB_PATH", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Filter policy overrides
POLICIES_CONFIG_PATH = Path(os.getenv("POLICIES_CONFIG_PATH", Path(__file__).parent / "policies.yaml"))

def load_policy_overrides(path: Path = None):
    """Load policy overrides from policies.yaml ({name: {field: value}})"""
    path = Path(path or POLICIES_CONFIG_PATH)
    if path.exists():
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
        return data.get('policies', {}) or {}
    return {}
