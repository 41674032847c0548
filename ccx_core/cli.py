#!/usr/bin/env python3
"""
ccx command line

    ccx annotate https://shop.example/item/1 [--force] [--json] [-o page.html]
    ccx rates EUR USD,PLN
    ccx options [--targets USD EUR GBP]
    ccx site shop.example [--enable | --disable]
    ccx serve
"""

import argparse
import asyncio
import json
import logging
import sys
import time
from typing import Any, Dict, List, Optional

from .config import config
from .engine import AnnotationEngine
from .exceptions import CcxError, SnapshotError
from .options import get_options, set_options
from .rate_cache import RateCache
from .rates import HttpRateClient, LocalRateClient, RateClient, RateService, build_rate_request
from .site_state import get_site_enabled, normalize_host, set_site_enabled
from .snapshot import build_document, capture_snapshot, render_html
from .storage import JSONFileStore, KeyValueStore

logger = logging.getLogger(__name__)


def _open_store(args: argparse.Namespace) -> KeyValueStore:
    path = getattr(args, "store", None) or config.store_path
    return JSONFileStore(path=path, workspace=config.workspace)


def _rate_client(store: KeyValueStore) -> RateClient:
    if config.worker_url:
        return HttpRateClient(config.worker_url, timeout=config.rates_timeout)
    return LocalRateClient(RateService(store))


def _split_codes(values: List[str]) -> List[str]:
    codes = []
    for value in values:
        codes.extend(part.strip().upper() for part in value.split(",") if part.strip())
    return codes


async def _snapshot_page(url: str) -> Dict[str, Any]:
    from playwright.async_api import Error as PlaywrightError, async_playwright

    try:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(
                headless=config.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            try:
                page = await browser.new_page()
                await page.goto(url, wait_until="domcontentloaded", timeout=config.navigation_timeout_ms)
                return await capture_snapshot(page)
            finally:
                await browser.close()
    except PlaywrightError as e:
        raise SnapshotError(f"Cannot load {url}: {e}") from e


def _create_run_logger(args: argparse.Namespace):
    if not args.log:
        return None
    from ccx_logs import create_run_logger
    return create_run_logger(
        "Annotate prices",
        url=args.url,
        command_line=" ".join(["ccx"] + sys.argv[1:]),
        log_dir=str(config.log_dir),
    )


async def _annotate(args: argparse.Namespace, snapshot: Dict[str, Any], run_logger=None) -> int:
    store = _open_store(args)
    document = build_document(snapshot, visible=True)
    if run_logger:
        run_logger.log_heading("Page")
        run_logger.log_kv("Host", document.hostname or "-")
        run_logger.log_kv("Elements", str(sum(1 for _ in document.root.iter_elements(include_self=True))))

    engine = AnnotationEngine(document, store, RateCache(_rate_client(store)), run_logger=run_logger)
    started = time.time()
    await engine.start()
    if run_logger:
        run_logger.log_kv("Enabled", "yes" if engine.enabled else "no")
        run_logger.log_json({"targets": engine.options.targets, "locale": engine.locale}, "Options")

    if not engine.enabled:
        if not args.force:
            message = (
                f"Conversions are disabled for {document.hostname or args.url}; "
                f"use --force or 'ccx site {document.hostname} --enable'"
            )
            print(message, file=sys.stderr)
            engine.stop()
            if run_logger:
                run_logger.log_error(message)
                run_logger.finalize(success=False, error="Site disabled")
            return 1
        if run_logger:
            run_logger.log_text("Site disabled, enabled for this run (--force)")
        engine.set_site_enabled(True)

    if run_logger:
        run_logger.log_heading("Conversions")
    await engine.drain()
    engine.stop()
    summary = engine.summary()

    if run_logger:
        run_logger.log_heading("Annotations")
        run_logger.log_annotations(summary)
        run_logger.finalize(success=True, duration_ms=int((time.time() - started) * 1000))

    if args.json:
        print(json.dumps({"url": args.url, "annotations": summary}, indent=2, ensure_ascii=False))
    else:
        markup = render_html(document)
        if args.output:
            with open(args.output, "w", encoding="utf-8") as f:
                f.write(markup)
            print(f"Wrote {len(summary)} annotations to {args.output}")
        else:
            print(markup)
    return 0


def cmd_annotate(args: argparse.Namespace) -> int:
    run_logger = _create_run_logger(args)
    started = time.time()
    try:
        snapshot = asyncio.run(_snapshot_page(args.url))
        return asyncio.run(_annotate(args, snapshot, run_logger))
    except CcxError as e:
        print(f"annotate failed: {e}", file=sys.stderr)
        if run_logger:
            run_logger.log_error(str(e))
            run_logger.finalize(success=False, duration_ms=int((time.time() - started) * 1000), error=str(e))
        return 1


def cmd_rates(args: argparse.Namespace) -> int:
    store = _open_store(args)
    symbols = _split_codes(args.symbols)
    message = build_rate_request(args.base.upper(), symbols)
    try:
        response = asyncio.run(_rate_client(store).send(message))
    except CcxError as e:
        print(f"rates failed: {e}", file=sys.stderr)
        return 1
    print(json.dumps(response, indent=2, ensure_ascii=False))
    return 0 if response.get("ok") else 1


def cmd_options(args: argparse.Namespace) -> int:
    store = _open_store(args)
    if args.targets:
        options = asyncio.run(set_options(store, _split_codes(args.targets)))
    else:
        options = asyncio.run(get_options(store))
    print(json.dumps({"targets": options.targets}))
    return 0


def cmd_site(args: argparse.Namespace) -> int:
    host = normalize_host(args.host)
    if not host:
        print("host required", file=sys.stderr)
        return 1
    store = _open_store(args)
    if args.enable or args.disable:
        asyncio.run(set_site_enabled(store, host, bool(args.enable)))
    enabled = asyncio.run(get_site_enabled(store, host))
    print(json.dumps({"host": host, "enabled": enabled}))
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    from ccx_server.__main__ import main as serve
    serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="ccx", description="ccx - Inline currency conversions")
    p.add_argument("--store", help="Path to the JSON store (default: workspace/ccx_store.json)")
    sub = p.add_subparsers(dest="sub")

    p_ann = sub.add_parser("annotate", help="Annotate prices on a web page")
    p_ann.add_argument("url", help="Page URL")
    p_ann.add_argument("--force", action="store_true", help="Annotate even if the site is disabled")
    p_ann.add_argument("--json", action="store_true", help="Print an annotation summary instead of HTML")
    p_ann.add_argument("-o", "--output", help="Write annotated HTML to a file")
    p_ann.add_argument("--log", action="store_true", help="Write a markdown run report to the log dir")
    p_ann.set_defaults(func=cmd_annotate)

    p_rates = sub.add_parser("rates", help="Look up exchange rates")
    p_rates.add_argument("base", help="Base currency, e.g. EUR")
    p_rates.add_argument("symbols", nargs="+", help="Target currencies, e.g. USD,PLN")
    p_rates.set_defaults(func=cmd_rates)

    p_opt = sub.add_parser("options", help="Show or set target currencies")
    p_opt.add_argument("--targets", nargs="+", help="Target currencies, e.g. USD EUR PLN")
    p_opt.set_defaults(func=cmd_options)

    p_site = sub.add_parser("site", help="Show or toggle conversions for a host")
    p_site.add_argument("host", help="Host name, e.g. shop.example")
    toggle = p_site.add_mutually_exclusive_group()
    toggle.add_argument("--enable", action="store_true", help="Enable conversions")
    toggle.add_argument("--disable", action="store_true", help="Disable conversions")
    p_site.set_defaults(func=cmd_site)

    p_serve = sub.add_parser("serve", help="Run the rate worker API")
    p_serve.set_defaults(func=cmd_serve)

    return p


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    argv = sys.argv[1:] if argv is None else argv
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return 0
    return int(args.func(args) or 0)


if __name__ == "__main__":
    raise SystemExit(main())
