# main.py
import argparse
import json
import os
import sys
import time
from datetime import datetime, timezone

from dotenv import load_dotenv

import config
from block_search import find_slot_at_or_before
from models import SlotSearchError

# Calendar formats accepted once a trailing "Z"/"+00:00" is dropped and the "T" separator becomes a space
TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
]


def parse_timestamp(value):
    """
    Convert a Unix timestamp or a UTC calendar string
    (YYYY-MM-DD[THH:MM[:SS]][Z]) to epoch seconds.
    """
    value = value.strip()
    try:
        return int(value)
    except ValueError:
        pass

    cleaned = value
    for suffix in ("Z", "+00:00"):
        if cleaned.endswith(suffix):
            cleaned = cleaned[:-len(suffix)]
            break
    date_part, sep, time_part = cleaned.partition("T")
    if sep:
        cleaned = f"{date_part} {time_part}"

    for fmt in TIMESTAMP_FORMATS:
        try:
            parsed = datetime.strptime(cleaned, fmt)
        except ValueError:
            continue
        return int(parsed.replace(tzinfo=timezone.utc).timestamp())

    raise ValueError(
        f"Invalid timestamp format: '{value}'. Supported formats: "
        "Unix timestamp (1750921805), ISO 8601 (2025-06-26T10:21:08Z), date only (2025-06-26)"
    )


def print_result(slot, block_info, target_ts, elapsed, network, verbose=False):
    print("\nFound block:")
    print(f"  Slot:        {slot}")
    print(f"  Block hash:  {block_info.blockhash}")
    print(f"  Block time:  {block_info.block_time if block_info.block_time is not None else 'unknown'}")
    if block_info.block_height is not None:
        print(f"  Block height: {block_info.block_height}")

    if block_info.block_time is not None:
        time_diff = block_info.block_time - target_ts
        if time_diff == 0:
            print("This block exactly matches the requested timestamp.")
        elif time_diff < 0:
            print(f"This block is {abs(time_diff)} seconds before the requested timestamp.")
        else:
            print(f"This block is {time_diff} seconds after the requested timestamp.")
            print("Warning: Found a block after the requested timestamp, which shouldn't happen.")

    print(f"\nSearch completed in {elapsed:.2f} seconds")
    if verbose:
        explorer_url = config.CHAIN_CONFIG[network]["explorer_url"].format(slot)
        print(f"Block Explorer: {explorer_url}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Find the latest Solana slot whose block time is at or before a given timestamp"
    )
    parser.add_argument("-t", "--timestamp", required=True,
                        help="Unix seconds (1750921805) or UTC date/time (2025-06-26T10:21:08Z)")
    parser.add_argument("-k", "--api-key", default=None,
                        help=f"RPC API key (defaults to the {config.API_KEY_ENV_VAR} environment variable)")
    parser.add_argument("--network", default=config.DEFAULT_NETWORK, choices=sorted(config.CHAIN_CONFIG),
                        help="Cluster to query")
    parser.add_argument("--rpc-url", default=None,
                        help="Override the cluster's JSON-RPC endpoint")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON output instead of human-readable text")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Show search progress and an explorer link")
    return parser


def main(argv=None, rpc=None):
    args = build_parser().parse_args(argv)

    try:
        target_ts = parse_timestamp(args.timestamp)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Load environment variables from .env file
    load_dotenv()
    api_key = args.api_key or os.getenv(config.API_KEY_ENV_VAR)
    if not api_key and rpc is None:
        print("Error: No API key provided!", file=sys.stderr)
        print(f"Set the {config.API_KEY_ENV_VAR} environment variable or pass --api-key.", file=sys.stderr)
        return 2

    search_config = config.SearchConfig(
        endpoint=args.rpc_url or config.CHAIN_CONFIG[args.network]["rpc_url"],
        api_key=api_key,
        verbose=args.verbose,
    )

    if not args.json:
        print(f"Searching for block with timestamp {target_ts} or right before it...")
        if args.verbose:
            print(f"Using RPC endpoint: {search_config.endpoint}")

    start_time = time.monotonic()
    try:
        slot, block_info = find_slot_at_or_before(target_ts, search_config, rpc=rpc)
    except SlotSearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    elapsed = time.monotonic() - start_time

    if args.json:
        payload = {
            "slot": slot,
            "target_timestamp": target_ts,
            "network": args.network,
            "elapsed_seconds": round(elapsed, 3),
            **block_info.to_dict(),
        }
        print(json.dumps(payload))
    else:
        print_result(slot, block_info, target_ts, elapsed, args.network, verbose=args.verbose)
    return 0


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
