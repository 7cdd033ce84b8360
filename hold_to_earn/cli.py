#!/usr/bin/env python3
"""
Energy analytics CLI.

Computes system-wide or per-user energy statistics for a contract and prints
them as JSON. Logs come from the chain indexer, or from a JSON file of
HarvestLogEntry dicts for offline analysis.

Examples:
    python -m hold_to_earn SP2....energize-v1
    python -m hold_to_earn SP2....energize-v1 --address SP3... --limit 500
    python -m hold_to_earn SP2....energize-v1 --logs-file harvests.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from hold_to_earn.config.settings import get_settings
from hold_to_earn.data.hiro_client import HiroClient, split_contract_id
from hold_to_earn.data.log_fetcher import HoldToEarnLogSource
from hold_to_earn.errors import EnergyAnalyticsError
from hold_to_earn.metrics.log_validation import filter_valid_entries
from hold_to_earn.metrics.system_energy import (
    calculate_energy_rates,
    calculate_system_energy_stats,
)
from hold_to_earn.metrics.timestamps import now_ms
from hold_to_earn.metrics.user_energy import calculate_user_energy_stats
from hold_to_earn.models.energy_models import HarvestLogEntry


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


def load_logs_file(path: Path) -> list[HarvestLogEntry]:
    """Read a JSON array of log entry dicts."""
    raw = json.loads(path.read_text())
    if not isinstance(raw, list):
        raise ValueError(f"{path} must contain a JSON array")
    return [HarvestLogEntry.from_dict(item) for item in raw]


async def fetch_logs(
    contract_id: str, limit: Optional[int], offset: int
) -> list[HarvestLogEntry]:
    async with HiroClient() as client:
        return await HoldToEarnLogSource(client).fetch_logs(contract_id, limit, offset)


def analyze(logs: list[HarvestLogEntry], address: Optional[str]) -> dict:
    """System or user analytics as a JSON-ready dict."""
    settings = get_settings()
    current_ms = now_ms()

    if address:
        return calculate_user_energy_stats(
            logs,
            address,
            fallback_span_minutes=settings.fallback_span_minutes,
            current_ms=current_ms,
        ).to_dict()

    valid_logs, _ = filter_valid_entries(
        logs, current_ms, settings.future_tolerance_seconds
    )
    return {
        "stats": calculate_system_energy_stats(valid_logs, current_ms).to_dict(),
        "rates": calculate_energy_rates(
            valid_logs,
            leaderboard_size=settings.leaderboard_size,
            fallback_span_minutes=settings.fallback_span_minutes,
            windows=settings.rate_history_windows,
            current_ms=current_ms,
        ).to_dict(),
    }


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Hold-to-earn energy analytics")
    parser.add_argument("contract_id", help="Energy contract id (address.name)")
    parser.add_argument("--address", help="Report on a single harvester address")
    parser.add_argument("--limit", type=int, help="Max events to fetch")
    parser.add_argument("--offset", type=int, default=0, help="Event offset")
    parser.add_argument(
        "--logs-file", type=Path, help="Read logs from a JSON file instead of the indexer"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else get_settings().log_level)

    try:
        split_contract_id(args.contract_id)
        if args.logs_file:
            logs = load_logs_file(args.logs_file)
        else:
            logs = asyncio.run(fetch_logs(args.contract_id, args.limit, args.offset))
        result = analyze(logs, args.address)
    except (EnergyAnalyticsError, ValueError, TypeError, OSError) as e:
        logging.error(f"Energy analysis failed: {e}")
        return 1

    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
