"""
Command line entry point.

Usage:
    python -m jobharvest --input input.json
    python -m jobharvest --input input.json --sink jsonl --output data/out.jsonl
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from jobharvest.pipeline import run_scrape
from jobharvest.storage import JsonlSink, SINKS

logger = logging.getLogger(__name__)


def build_sink(kind: str, output: str = None):
    if kind == 'jsonl':
        return JsonlSink(Path(output) if output else None)
    return SINKS[kind]()


async def _main(raw_input, sink) -> int:
    try:
        metrics = await run_scrape(raw_input, sink)
    finally:
        await sink.close()
    print(json.dumps(metrics.to_dict(), indent=2, default=str))
    return 0 if metrics.status in ('success', 'exhausted') else 1


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Harvest PowerToFly job postings")
    parser.add_argument('--input', type=str, help="Path to a JSON file with run options")
    parser.add_argument('--output', type=str, help="Output path for the jsonl sink")
    parser.add_argument('--sink', choices=sorted(k for k in SINKS if k != 'memory'), default='jsonl')
    parser.add_argument('--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    raw_input = {}
    if args.input:
        with open(args.input, encoding='utf-8') as f:
            raw_input = json.load(f)

    return asyncio.run(_main(raw_input, build_sink(args.sink, args.output)))


if __name__ == '__main__':
    sys.exit(main())
