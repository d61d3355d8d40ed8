"""
Job to pre-populate the set-data cache.

The cache lives inside the API process, so this job asks the running
service to warm it. Run before traffic arrives or on a schedule.
"""

import argparse
import asyncio
import logging
from typing import Any

import httpx

from ripexplorer.config import settings
from ripexplorer.services.set_data import POPULAR_SETS

logger = logging.getLogger(__name__)


async def run_warm_cache(
    set_ids: list[str] | None = None,
    service_url: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> dict[str, Any] | None:
    """
    Warm the service's cache with the given sets.

    Args:
        set_ids: Sets to cache. If None, the popular sets.
        service_url: Base URL of the running service
        client: Optional httpx client

    Returns:
        The service's warm-cache report, or None if the call failed
    """
    url = f"{(service_url or settings.service_url).rstrip('/')}/sets/warm-cache"
    payload = {"set_ids": list(set_ids or POPULAR_SETS)}
    logger.info("Warming %d sets via %s", len(payload["set_ids"]), url)

    try:
        if client:
            response = await client.post(url, json=payload)
        else:
            # Cold upstream fetches with batch delays take a while
            async with httpx.AsyncClient(timeout=300.0) as temp:
                response = await temp.post(url, json=payload)
        response.raise_for_status()
        report: dict[str, Any] = response.json()
    except httpx.HTTPError as e:
        logger.error("Cache warming failed: %s", e)
        return None

    logger.info(
        "Cache warming complete: %d successful, %d failed",
        report.get("success_count", 0),
        report.get("fail_count", 0),
    )
    for error in report.get("errors") or []:
        logger.warning("  %s", error)
    return report


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Warm the set-data cache")
    parser.add_argument(
        "--sets",
        nargs="+",
        help="Set ids to cache (default: popular sets)",
    )
    parser.add_argument(
        "--service-url",
        default=None,
        help=f"Base URL of the running service (default: {settings.service_url})",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    report = asyncio.run(run_warm_cache(args.sets, args.service_url))
    if report is None:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
