#!/usr/bin/env python3
"""Fetch a single case by CNR for quick smoke-testing of a provider."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from courtdata.config import Settings
from courtdata.errors import ProviderConfigError
from courtdata.providers import CourtProviderFactory
from courtdata.simulation import SIMULATED_ENDPOINT, SimulatedCourtPortal
from courtdata.types import to_jsonable


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("cnr", help="Case CNR, e.g. MHPU010012342023")
    parser.add_argument(
        "--provider",
        default=None,
        help="Provider type token. Defaults to COURTDATA_DEFAULT_PROVIDER/.env",
    )
    parser.add_argument(
        "--api-token",
        dest="api_token",
        default=None,
        help="Court API token (Token XXXXX). Defaults to COURTDATA_API_TOKEN/.env",
    )
    parser.add_argument(
        "--endpoint",
        dest="endpoint",
        default=None,
        help="Override the court API endpoint (default COURTDATA_API_ENDPOINT)",
    )
    parser.add_argument(
        "--simulate",
        action="store_true",
        help="Serve the request from the fixture-backed simulated portal",
    )
    parser.add_argument(
        "--with-orders",
        dest="with_orders",
        action="store_true",
        help="Also list the orders passed in the case",
    )
    parser.add_argument("--fixture", type=Path, default=None, help="Simulated portal fixture JSON")
    return parser.parse_args()


async def fetch(args: argparse.Namespace) -> tuple[dict, int]:
    settings = Settings()
    config = settings.provider_config()
    if args.api_token:
        config = replace(config, api_key=args.api_token)
    if args.endpoint:
        config = replace(config, api_endpoint=args.endpoint)

    options = {}
    if args.simulate:
        portal = SimulatedCourtPortal(args.fixture or settings.fixture_path)
        config = replace(config, api_endpoint=SIMULATED_ENDPOINT, api_key=config.api_key or "simulated")
        options["transport"] = portal.transport()

    provider = CourtProviderFactory.create_provider(args.provider or settings.default_provider, config, **options)
    try:
        result = await provider.get_case_by_cnr(args.cnr)
        payload = {"case": to_jsonable(result)}
        if result.success and args.with_orders:
            payload["orders"] = to_jsonable(await provider.list_orders(args.cnr))
    finally:
        await provider.aclose()
    return payload, 0 if result.success else 1


def main() -> int:
    args = parse_args()
    try:
        payload, status = asyncio.run(fetch(args))
    except ProviderConfigError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2
    print(json.dumps(payload, indent=2, sort_keys=True))
    return status


if __name__ == "__main__":
    raise SystemExit(main())
