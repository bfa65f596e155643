"""Command-line interface for the site mirror."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .cli_config import load_env_config

load_env_config(load_env=load_dotenv)

from .config import ConfigError, MirrorConfig, load_config_from_env, load_config_from_file
from .logs import setup_logging
from .mirror import mirror_site_async


def _parse_headers(values: Optional[List[str]]) -> Optional[Dict[str, str]]:
    if not values:
        return None
    headers: Dict[str, str] = {}
    for value in values:
        if ":" in value:
            key, val = value.split(":", 1)
            headers[key.strip()] = val.strip()
        else:
            logging.warning("Invalid header format (expected 'Key: Value'): %s", value)
    return headers or None


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sitemirror",
        description="Incrementally mirror a website below a base URL.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Examples:
  # Mirror a site into ./mirror (metadata in ./mirror.json)
  sitemirror https://example.com/docs/ -o mirror

  # Four concurrent requests, always download everything
  sitemirror https://example.com/ -o mirror --parallel 4 --no-304

  # Static authorization header
  sitemirror https://example.com/ -o mirror --header "Authorization: Bearer xyz"

  # Options from a JSON file (command-line flags win)
  sitemirror --config mirror.config.json -v

Environment:
  SITEMIRROR_URL, SITEMIRROR_LOCAL_PATH, SITEMIRROR_JSON_PATH,
  SITEMIRROR_PARALLEL, SITEMIRROR_TRY_304, SITEMIRROR_USER_AGENT
""",
    )

    parser.add_argument(
        "url",
        nargs="?",
        default=None,
        help="Crawl root URL (default: SITEMIRROR_URL)",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Local mirror directory",
    )
    parser.add_argument(
        "--json-path",
        type=str,
        default=None,
        help="Metadata file (default: <output>.json)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON file with mirror options",
    )
    parser.add_argument(
        "--parallel",
        type=int,
        default=None,
        help="Concurrent requests per round (default: 2)",
    )
    parser.add_argument(
        "--no-304",
        action="store_true",
        help="Do not send conditional requests",
    )
    parser.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="User-Agent header sent with every request",
    )
    parser.add_argument(
        "--header",
        action="append",
        default=None,
        help='Extra HTTP header (can be repeated). Example: --header "Authorization: Bearer xyz"',
    )
    parser.add_argument(
        "--target",
        action="append",
        default=None,
        help="Additional path to request, relative to the base (can be repeated). "
             "Replaces the default /robots.txt and /sitemap.xml",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Request timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--persist-each-round",
        action="store_true",
        help="Write the metadata file after every crawl round",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _build_config(args: argparse.Namespace) -> MirrorConfig:
    """Merge config file or environment with command-line flags."""
    overrides: Dict[str, Any] = {
        "url": args.url,
        "local_path": args.output,
        "json_path": args.json_path,
        "parallel": args.parallel,
        "try_304": False if args.no_304 else None,
        "user_agent": args.user_agent,
        "headers": _parse_headers(args.header),
        "additional_targets": args.target,
        "timeout": args.timeout,
        "persist_each_round": True if args.persist_each_round else None,
        "verbose": True if args.verbose else None,
    }

    if args.config:
        return load_config_from_file(args.config, **overrides)

    config = load_config_from_env(**overrides)
    if config is None:
        raise ConfigError("No URL given (pass one or set SITEMIRROR_URL)")
    return config


async def _run_mirror_async(args: argparse.Namespace) -> int:
    """Main async entry point for the mirror command."""
    config = _build_config(args)
    result = await mirror_site_async(config)
    logging.info(
        "Metadata written to %s (%d resources)",
        config.json_path,
        result.stats.get("fetched", 0),
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the sitemirror command."""
    args = _parse_args(argv)
    setup_logging(args.verbose)

    try:
        return asyncio.run(_run_mirror_async(args))
    except KeyboardInterrupt:
        logging.info("Interrupted")
        return 130
    except Exception as exc:
        logging.error("ERROR: %s", exc)
        if args.verbose:
            logging.exception("Full traceback:")
        return 1


if __name__ == "__main__":
    sys.exit(main())
