"""Demo host process shipping application logs into the tiered log table.

This module is a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Opens the batching sink (fails fast if the store is unreachable).
- Attaches the sink to an application logger that also prints to stdout.
- Emits a handful of entries, then flushes the remainder before exiting.

It is **not** production orchestration logic; the store, its tiering policy
and credentials are provisioned outside this process.
"""

from __future__ import annotations

import logging
import sys
import time

from config import Config, load_config
from logsink import BatchingLogSink, LogSinkError, SinkConnectionError, attach_handler

DEMO_LOGGER = "demo"


def _configure_stdout_logging() -> tuple[logging.Logger, logging.Handler]:
    """Text-format the demo logger to stdout with full timestamps."""
    formatter = logging.Formatter("time=%(asctime)s level=%(levelname)s msg=%(message)s")
    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)

    app_logger = logging.getLogger(DEMO_LOGGER)
    app_logger.setLevel(logging.DEBUG)
    app_logger.propagate = False
    app_logger.addHandler(stream)
    return app_logger, stream


def run_demo(cfg: Config) -> int:
    """Run the demo and return a process exit status."""
    target = cfg.sink.store_target()
    try:
        sink = BatchingLogSink(target, batch_size=cfg.sink.batch_size)
    except SinkConnectionError as exc:
        print(f"failed to connect to log store: {exc}", file=sys.stderr)
        return 1

    app_logger, stream = _configure_stdout_logging()
    handler = attach_handler(sink, app_logger)
    try:
        with sink:
            for i in range(cfg.demo.entry_count):
                app_logger.info("entry-%d", i)
                if cfg.demo.interval_s:
                    time.sleep(cfg.demo.interval_s)
    except LogSinkError as exc:
        print(f"failed to flush logs: {exc}", file=sys.stderr)
        return 1
    finally:
        app_logger.removeHandler(handler)
        app_logger.removeHandler(stream)

    print(f"Logs sent to {target.describe()}.")
    return 0


def main() -> None:
    """CLI entrypoint for running the demo with `python src/main.py`."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    sys.exit(run_demo(load_config()))


if __name__ == "__main__":
    main()
