import argparse
import asyncio
import logging
import signal

from colorama import init, Fore, Style

from config import (
    TELEGRAM_BOT_TOKEN,
    TELEGRAM_CHAT_ID,
    HELIUS_API_KEY,
    AUTOPOST_DB_PATH,
    LOG_LEVEL,
    load_policy_overrides,
)
from watcher_config import (
    get_watcher_config,
    get_dexscreener_config,
    get_helius_config,
    get_rugcheck_config,
    get_autopost_config,
    get_deduplication_config,
)
from graduation import (
    AutopostScheduler,
    ConfigurationError,
    Deduplicator,
    DexScreenerAPI,
    GraduationWatcher,
    HeliusAPI,
    InMemoryRecipientStore,
    RecipientConfig,
    RugCheckAPI,
    SQLiteRecipientStore,
    TelegramDispatcher,
    build_policies,
    get_policy,
)

logger = logging.getLogger("main")

init(autoreset=True)


def print_banner(mode: str):
    print(f"\n{Fore.CYAN}{'='*50}")
    print(f"{Fore.MAGENTA}🎓 PUMP.FUN GRADUATION WATCHER{Style.RESET_ALL}")
    print(f"{Fore.YELLOW}Mode: {Fore.WHITE}{mode}")
    print(f"{Fore.YELLOW}Helius: {Fore.WHITE}{'SET' if HELIUS_API_KEY else 'MISSING (holder data defaulted)'}")
    print(f"{Fore.YELLOW}Telegram: {Fore.WHITE}{'SET' if TELEGRAM_BOT_TOKEN else 'MISSING (no delivery)'}")
    print(f"{Fore.YELLOW}Store: {Fore.WHITE}{AUTOPOST_DB_PATH or 'in-memory'}")
    print(f"{Fore.CYAN}{'='*50}\n")


def print_candidate(index, candidate):
    pair = candidate.pair
    score_color = Fore.GREEN if candidate.score >= 7 else (Fore.YELLOW if candidate.score >= 5 else Fore.RED)
    status = f"{Fore.GREEN}PASS" if candidate.passes_filter else f"{Fore.RED}FAIL"

    print(f"{Fore.CYAN}{index:>2}. {Fore.WHITE}${candidate.graduation.symbol} "
          f"{score_color}{candidate.score:.1f}/10 {status}")
    print(f"    {Fore.YELLOW}Mint: {Fore.WHITE}{candidate.mint}")
    print(f"    {Fore.YELLOW}Liquidity: {Fore.WHITE}${(pair.get('liquidity') or {}).get('usd') or 0:,.0f}"
          f"  {Fore.YELLOW}MCap: {Fore.WHITE}${pair.get('marketCap') or 0:,.0f}"
          f"  {Fore.YELLOW}Age: {Fore.WHITE}{candidate.metrics.token_age_hours * 60:.0f}m")
    print(f"    {Fore.YELLOW}Holders: {Fore.WHITE}{candidate.metrics.holders}"
          f"  {Fore.YELLOW}Top 10: {Fore.WHITE}{candidate.metrics.top_holder_concentration:.1f}%")
    for failure in candidate.filter_failures:
        print(f"    {Fore.RED}- {failure}")


def build_watcher():
    config = get_watcher_config()
    dex = DexScreenerAPI(get_dexscreener_config())
    helius = HeliusAPI(HELIUS_API_KEY, get_helius_config())
    rugcheck = RugCheckAPI(get_rugcheck_config())
    return GraduationWatcher(dex, helius, rugcheck, config['watcher'])


async def build_store():
    if AUTOPOST_DB_PATH:
        store = SQLiteRecipientStore(AUTOPOST_DB_PATH)
    else:
        store = InMemoryRecipientStore()

    if TELEGRAM_CHAT_ID and await store.get_recipient(TELEGRAM_CHAT_ID) is None:
        await store.save_recipient_config(
            RecipientConfig(chat_id=TELEGRAM_CHAT_ID, autopost_enabled=True)
        )
        logger.info(f"[MAIN] Seeded chat {TELEGRAM_CHAT_ID} with autopost enabled")

    return store


async def run_scan(watcher, mode, policy, max_age):
    if mode == 'fresh':
        candidates = await watcher.scan_fresh_graduations(policy)
    elif mode == 'all':
        candidates = await watcher.scan_all_graduations(max_age)
    else:
        candidates = await watcher.scan_for_graduations(policy)

    if watcher.last_scan_error:
        print(f"{Fore.RED}❌ Scan failed: {watcher.last_scan_error}")
        return

    if not candidates:
        print(f"{Fore.YELLOW}No graduations found meeting criteria.")
        return

    print(f"{Fore.GREEN}✅ {len(candidates)} candidates\n")
    for i, candidate in enumerate(candidates, 1):
        print_candidate(i, candidate)


async def run_autopost(scheduler):
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            # Windows: KeyboardInterrupt ends asyncio.run instead
            pass

    scheduler.start()
    await stop_event.wait()

    print(f"\n{Fore.YELLOW}Stopping autopost...")
    scheduler.stop()
    await scheduler.wait_idle()


async def main():
    parser = argparse.ArgumentParser(description="pump.fun Graduation Watcher & Telegram Autopost")
    parser.add_argument("--once", action="store_true",
                        help="Run a single scan-and-notify cycle and exit")
    parser.add_argument("--scan", choices=['standard', 'fresh', 'all'],
                        help="Print one scan to the console (no Telegram delivery)")
    parser.add_argument("--policy", default=None,
                        help="Filter policy: default, aggressive, conservative (or one from policies.yaml)")
    parser.add_argument("--max-age", type=float, default=120,
                        help="Max pair age in minutes for --scan all. Default: 120")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    autopost_config = get_autopost_config()
    try:
        policies = build_policies(load_policy_overrides())
        policy = get_policy(args.policy or autopost_config.get('policy', 'default'), policies)
    except ConfigurationError as e:
        print(f"{Fore.RED}❌ {e}")
        return

    watcher = build_watcher()

    if args.scan:
        print_banner(f"SCAN ({args.scan}, policy {policy.name})")
        try:
            await run_scan(watcher, args.scan, policy, args.max_age)
        finally:
            await watcher.close()
        return

    print_banner("ONCE" if args.once else "AUTOPOST")

    store = await build_store()
    dispatcher = TelegramDispatcher(TELEGRAM_BOT_TOKEN)
    scheduler = AutopostScheduler(
        watcher, store, dispatcher, autopost_config,
        policy=policy,
        deduplicator=Deduplicator(get_deduplication_config()),
    )

    await dispatcher.start()
    try:
        if args.once:
            report = await scheduler.scan_and_notify()
            print(f"{Fore.GREEN}📊 {report.sent} sent / {report.candidates} candidates "
                  f"/ {report.failed} failed, skipped: {report.skipped}")
        else:
            await run_autopost(scheduler)
    finally:
        await watcher.close()
        await dispatcher.close()
        print(f"{Fore.CYAN}Store stats: {await store.get_stats()}")


if __name__ == "__main__":
    asyncio.run(main())
