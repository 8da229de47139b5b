from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys

from pressr.config import ConfigError, RequestSpec, RunConfig
from pressr.data import DataFileError, load_template
from pressr.loadgen.runner import Dispatcher, SpecSource
from pressr.loadgen.transport import HttpxTransport
from pressr.metrics import LoadTestSummary

logger = logging.getLogger(__name__)


def parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            logger.warning("Ignoring invalid header %r, expected 'key:value'", raw)
            continue
        headers[name.strip()] = value.strip()
    return headers


def _build_source(args: argparse.Namespace) -> SpecSource:
    base = RequestSpec(
        url=args.url,
        method=args.method,
        headers=parse_headers(args.header),
        timeout_sec=args.timeout,
    )
    if args.data_file is None:
        return base
    template = load_template(args.data_file)
    return template.spec_factory(base, seed=args.seed)


PROGRESS_EVERY = 10


async def log_progress(completed: int, total: int) -> None:
    if completed % PROGRESS_EVERY == 0 or completed == total:
        logger.info("Completed %d/%d requests", completed, total)


async def _run(dispatcher: Dispatcher, transport: HttpxTransport, source: SpecSource) -> LoadTestSummary:
    async with transport:
        return await dispatcher.run(source)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="pressr", description="HTTP load testing tool")
    parser.add_argument("-u", "--url", required=True, help="URL to send requests to")
    parser.add_argument(
        "-m",
        "--method",
        choices=["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"],
        type=str.upper,
        default="GET",
    )
    parser.add_argument("-r", "--requests", type=int, default=100, help="Number of requests to send")
    parser.add_argument("-c", "--concurrency", type=int, default=10, help="Number of concurrent requests")
    parser.add_argument("-d", "--data-file", help="JSON file with request data and variables")
    parser.add_argument("-H", "--header", action="append", default=[], help="Header as 'key:value'")
    parser.add_argument("-t", "--timeout", type=float, default=30.0, help="Request timeout in seconds")
    parser.add_argument("--seed", type=int, default=None, help="Seed for variable selection")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], default="WARNING")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    config = RunConfig(total_requests=args.requests, concurrency=args.concurrency)
    try:
        source = _build_source(args)
        config.validate()
    except (ConfigError, DataFileError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    transport = HttpxTransport()
    dispatcher = Dispatcher(transport, config, progress=log_progress)
    try:
        summary = asyncio.run(_run(dispatcher, transport, source))
    except KeyboardInterrupt:
        if dispatcher.summary is None:
            return 130
        summary = dispatcher.summary
    print(json.dumps({"config": dict(config.to_metadata()), **summary.to_dict()}, indent=2))
    return 0 if summary.complete else 130


if __name__ == "__main__":
    raise SystemExit(main())
