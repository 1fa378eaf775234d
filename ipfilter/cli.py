"""CLI entry point for ipfilter: evaluate a single request against a filter configuration."""

from __future__ import annotations

import argparse
import logging
import sys

from .client_ip import CF_CONNECTING_IP, FORWARDED_FOR, RequestDescriptor, resolve_client_ip
from .config import FilterConfiguration, config
from .engine import IpFilter
from .errors import ConfigurationError

EXIT_ALLOW = 0
EXIT_DENY = 1
EXIT_CONFIG_ERROR = 2


def _parse_entry(raw: str, ranges: bool):
    """In range mode ``low-high`` becomes a pair; everything else stays a string."""
    if ranges and "-" in raw:
        low, _, high = raw.partition("-")
        return [low.strip(), high.strip()]
    return raw


def _build_config(args: argparse.Namespace) -> FilterConfiguration:
    if args.env:
        return config.to_filter_config()
    return FilterConfiguration.from_options(
        [_parse_entry(e, args.ranges) for e in args.entries],
        mode=args.mode,
        cidr=args.cidr,
        ranges=args.ranges,
        allow_private_ips=args.allow_private,
        match=args.match,
        excluding=args.exclude,
    )


def _cmd_check(args: argparse.Namespace) -> int:
    try:
        filter_config = _build_config(args)
        ip_filter = IpFilter(filter_config)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    headers = {}
    if args.forwarded_for:
        headers[FORWARDED_FOR] = args.forwarded_for
    if args.cf_connecting_ip:
        headers[CF_CONNECTING_IP] = args.cf_connecting_ip
    request = RequestDescriptor.build(args.path, headers=headers, peer=args.ip)

    decision = ip_filter.check(request)
    if args.verbose:
        print(f"client ip: {resolve_client_ip(request) or '<unknown>'}", file=sys.stderr)
    print(f"{decision.verdict.value}\t{decision.reason}")
    return EXIT_ALLOW if decision.allowed else EXIT_DENY


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.WARNING)

    parser = argparse.ArgumentParser(
        prog="ipfilter",
        description="ipfilter CLI: decide whether a request would be allowed",
    )
    sub = parser.add_subparsers(dest="command")

    check_parser = sub.add_parser("check", help="Evaluate one request against a filter")
    check_parser.add_argument(
        "entries",
        nargs="*",
        help="IP addresses, CIDR blocks (--cidr) or low-high ranges (--ranges)",
    )
    check_parser.add_argument("--ip", default="", help="Transport peer address")
    check_parser.add_argument("--forwarded-for", default="", help="X-Forwarded-For header value")
    check_parser.add_argument("--cf-connecting-ip", default="", help="CF-Connecting-IP header value")
    check_parser.add_argument("--path", default="/", help="Request path (default: /)")
    check_parser.add_argument(
        "--mode",
        choices=["allow", "deny"],
        default="deny",
        help="Whether the entries are allowed or denied (default: deny)",
    )
    rep = check_parser.add_mutually_exclusive_group()
    rep.add_argument("--cidr", action="store_true", help="Entries are CIDR blocks")
    rep.add_argument("--ranges", action="store_true", help="Entries are IPv4 ranges")
    check_parser.add_argument(
        "--allow-private",
        action="store_true",
        help="Allow private addresses unless explicitly denied",
    )
    check_parser.add_argument(
        "--match", action="append", default=[], help="Route pattern to filter (repeatable)"
    )
    check_parser.add_argument(
        "--exclude", action="append", default=[], help="Route pattern to skip (repeatable)"
    )
    check_parser.add_argument(
        "--env",
        action="store_true",
        help="Read the filter configuration from IPFILTER_* settings instead",
    )
    check_parser.add_argument("-v", "--verbose", action="store_true", help="Show the resolved client IP")

    args = parser.parse_args(argv)

    if args.command == "check":
        sys.exit(_cmd_check(args))
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
