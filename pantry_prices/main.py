from __future__ import annotations

import argparse
import asyncio
import json
import logging

from .batch import iter_quotes, resolve_prices
from .config import OPTIONAL_KEYS, REQUIRED_KEYS, Config
from .http import async_client
from .inventory import InventoryClient
from .providers import default_resolvers
from .report import PROVIDER_LABELS, build_report
from .suggest import ShoppingCandidates, build_candidates

__version__ = "0.1.0"


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="pantry-prices")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging (strategies, scores)")

    sub = p.add_subparsers(dest="cmd", required=False)

    p_config = sub.add_parser("config", help="Config commands")
    sub_config = p_config.add_subparsers(dest="config_cmd", required=True)
    sub_config.add_parser("keys", help="List required and optional environment keys")
    sub_config.add_parser("check", help="Validate required environment keys are set")

    p_price = sub.add_parser("price", help="Look up prices for product names")
    p_price.add_argument("queries", nargs="+", help="Product names (e.g. 'Huevos Orgánicos')")
    p_price.add_argument("--window", type=_positive_int, default=None, help="Names resolved concurrently")
    p_price.add_argument("--json", action="store_true", help="Print one JSON object per quote")

    p_list = sub.add_parser("list", help="Build the shopping list from inventory and price it")
    p_list.add_argument("--provider", choices=sorted(PROVIDER_LABELS), default="ml", help="Provider for totals")
    p_list.add_argument("--window", type=_positive_int, default=None, help="Names resolved concurrently")
    p_list.add_argument("--json", dest="json_path", default=None, help="Write the list as JSON to this path")
    p_list.add_argument("--share", action="store_true", help="Print the shareable checklist text")

    return p


def _setup_logging(level: str, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if args.version:
        print(__version__)
        return 0

    if args.cmd is None:
        p.print_help()
        return 0

    if args.cmd == "config":
        if args.config_cmd == "keys":
            for k in REQUIRED_KEYS:
                print(k)
            for k in OPTIONAL_KEYS:
                print(f"{k} (optional)")
            return 0

        if args.config_cmd == "check":
            try:
                # Intentionally do not print secret values
                Config.from_env()
            except RuntimeError as exc:
                print(f"ERROR: {exc}")
                return 1
            print("OK: required environment keys present")
            return 0

    if args.cmd == "price":
        cfg = Config.provider_only()
        _setup_logging(cfg.log_level, args.verbose)
        return asyncio.run(_run_price(args, cfg))

    if args.cmd == "list":
        try:
            cfg = Config.from_env()
        except RuntimeError as exc:
            print(f"ERROR: {exc}")
            return 1
        _setup_logging(cfg.log_level, args.verbose)
        return _run_list(args, cfg)

    raise RuntimeError("unreachable")


async def _run_price(args, cfg: Config) -> int:
    window = args.window or cfg.concurrency
    async with async_client(timeout_s=cfg.http_timeout_s) as client:
        resolvers = default_resolvers(client, cfg)
        async for pq in iter_quotes(args.queries, resolvers, window=window):
            if args.json:
                print(json.dumps({"name": pq.name, "provider": pq.provider, **pq.quote.to_dict()}, ensure_ascii=False))
                continue
            tag = "real" if pq.quote.is_real_price else "est."
            print(f"{pq.name:<30} {PROVIDER_LABELS.get(pq.provider, pq.provider):<14} ${pq.quote.price:,.2f} ({tag})")
            print(f"   URL: {pq.quote.url}")
    return 0


def _run_list(args, cfg: Config) -> int:
    inv = InventoryClient(
        base_url=cfg.supabase_url,
        api_key=cfg.supabase_anon_key,
        access_token=cfg.supabase_access_token,
    )
    try:
        items = inv.list_consumed_items()
    except RuntimeError as exc:
        print(f"ERROR: {exc}")
        return 1

    candidates = build_candidates(items, providers=PROVIDER_LABELS.keys())
    all_items = candidates.all_items()
    print(f"Fetched {len(items)} inventory items; {len(candidates.main)} on the list, "
          f"{len(candidates.recommended)} suggested.")
    if not all_items:
        print("Nothing to buy.")
        return 0

    asyncio.run(_fill_prices(candidates, cfg, window=args.window or cfg.concurrency))

    report = build_report(candidates)
    print("\n" + report.summary_text(args.provider))
    if args.share:
        print("\n" + report.share_text(args.provider))
    if args.json_path:
        path = report.write_json(args.json_path)
        print(f"\nList written to {path}")
    return 0


async def _fill_prices(candidates: ShoppingCandidates, cfg: Config, *, window: int) -> None:
    by_name: dict[str, list] = {}
    for it in candidates.all_items():
        by_name.setdefault(it.name, []).append(it)

    async with async_client(timeout_s=cfg.http_timeout_s) as client:
        resolvers = default_resolvers(client, cfg)
        done = 0
        async for row in resolve_prices(list(by_name), resolvers, window=window):
            done += 1
            for it in by_name[row.name]:
                it.prices.update(row.quotes)
            summary = "  ".join(
                f"{PROVIDER_LABELS.get(k, k)}: ${q.price:,.2f}{'' if q.is_real_price else '*'}"
                for k, q in row.quotes.items()
            )
            print(f"  [{done}/{len(by_name)}] {row.name}  {summary}")


if __name__ == "__main__":
    raise SystemExit(main())
