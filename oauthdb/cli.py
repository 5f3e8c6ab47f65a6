"""
oauthdb-check: readiness check for a configured store.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

Connects to the configured backend, syncs configured clients and reports
the backend's encoding. Exits non-zero when the backend is unavailable.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from .core.config import StoreConfig
from .core.store import OAuthDB
from .errors import EncodingUnsupportedError, OAuthDBError, UnavailableError
from .util.logging_config import setup_logging


async def run_check(config: StoreConfig) -> int:
    """Connect, report readiness and encoding, then close. Returns the exit code."""
    db = OAuthDB.new(config)
    try:
        await db.connect()
    except UnavailableError as e:
        print(f"✗ Backend unavailable: {e.message}")
        return 2

    try:
        health = await db.ping()
        print(f"✓ {db.backend.name} backend ready ({health.duration_ms:.1f} ms)")
        print(f"  - Configured clients: {len(config.clients)}")

        try:
            encoding = await db.get_encoding_info()
        except EncodingUnsupportedError:
            print("  - Encoding: not applicable")
        else:
            for name, value in encoding.to_dict().items():
                print(f"  - {name}: {value}")
            if not (encoding.is_utf8() and encoding.is_case_insensitive_unicode()):
                print("  ! Encoding is not UTF-8 with a case-insensitive Unicode collation")
    finally:
        await db.close()

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the oauthdb-check command."""
    parser = argparse.ArgumentParser(
        prog="oauthdb-check",
        description="Check that the OAuth store backend is reachable and correctly encoded",
    )
    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="JSON or YAML configuration file (default: OAUTHDB_* environment variables)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)",
    )
    args = parser.parse_args(argv)

    setup_logging(args.log_level)

    try:
        config = StoreConfig.from_file(args.config) if args.config else StoreConfig.from_env()
        config.validate()
    except (OSError, ValueError) as e:
        print(f"✗ Invalid configuration: {e}")
        return 1

    try:
        return asyncio.run(run_check(config))
    except OAuthDBError as e:
        print(f"✗ {e.code.value}: {e.message}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
