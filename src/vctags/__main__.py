"""Run vctags as an execd processor: line protocol on stdin, enriched on stdout."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from typing import Optional, Sequence, TextIO

from . import __version__
from .config import Config
from .errors import LineProtocolError, VcTagsError
from .lineproto import format_line, parse_line
from .processor import VcTagsProcessor

logger = logging.getLogger("vctags")


def _handle_shutdown(signum, frame):
    """Turn a termination signal into the same clean stop as Ctrl-C."""
    logger.info("Received signal %d, shutting down", signum)
    raise KeyboardInterrupt


def process_stream(processor: VcTagsProcessor, source: TextIO, sink: TextIO) -> int:
    """Enrich every line of ``source`` into ``sink`` until EOF.

    Returns the number of lines written.
    """
    written = 0
    for line in source:
        stripped = line.rstrip("\r\n")
        if not stripped.strip():
            continue
        try:
            metric = parse_line(stripped)
        except LineProtocolError as exc:
            logger.error("ERROR parsing metric, passing it through: %s", exc)
            output = stripped
        else:
            output = format_line(processor.add(metric))
        sink.write(output + "\n")
        sink.flush()
        written += 1
    return written


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="vctags", description="Adds vSphere object's tags to incoming metrics")
    parser.add_argument("-config", "--config", default="", help="path to the config file for this plugin")
    parser.add_argument("-version", "--version", action="store_true", help="show vctags version and exit")
    args = parser.parse_args(argv)

    if args.version:
        print("vctags", __version__)
        return 0

    try:
        config = Config.load(args.config) if args.config else Config()
        logging.basicConfig(
            level=logging.DEBUG if config.debug else logging.INFO,
            format="%(levelname)s:%(name)s:%(message)s",
            stream=sys.stderr,
        )
        processor = VcTagsProcessor(config)
        processor.init()
    except VcTagsError as exc:
        print(f"ERROR loading shim configuration: {exc}", file=sys.stderr)
        return 1

    previous_handler = signal.signal(signal.SIGTERM, _handle_shutdown)
    processor.start()
    try:
        process_stream(processor, sys.stdin, sys.stdout)
    except KeyboardInterrupt:
        pass
    except (OSError, VcTagsError) as exc:
        print(f"ERROR running shim: {exc}", file=sys.stderr)
        return 2
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
        processor.stop(timeout=processor.config.timeout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
