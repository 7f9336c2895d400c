"""Command-line entry point for the payroll_admin package."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Sequence

from .config import load_config
from .services.api_client import APIClient, APIError, describe_error


async def _check(client: APIClient) -> int:
    async with client:
        try:
            status = await client.health()
        except APIError as exc:
            print(f"{client.config.base_url}: {describe_error(exc)}")
            return 1
    print(f"{client.config.base_url}: {status.get('status', 'ok')}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the requested workflow."""

    parser = argparse.ArgumentParser(
        prog="payroll_admin",
        description="Run the Payroll Admin desktop application or check the backend.",
    )
    parser.add_argument("--base-url", help="Backend URL, overrides PAYROLL_API_BASE_URL and config.json.")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: INFO).",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Call the backend /health endpoint and exit.",
    )

    args = parser.parse_args(None if argv is None else list(argv))

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = load_config(base_url=args.base_url)

    if args.check:
        return asyncio.run(_check(APIClient(config)))

    from .app import run_app

    return run_app(config)


if __name__ == "__main__":
    raise SystemExit(main())
