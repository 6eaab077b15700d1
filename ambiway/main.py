# © Copyright 2025 Stuart Parmenter
# SPDX-License-Identifier: MIT

import argparse
import asyncio
import contextlib
import logging
import signal
import sys

from .config import Config
from .exceptions import AmbiwayError, ConfigurationError
from .geometry import compute_regions, list_monitors
from .output import SinkFactory
from .settings import Settings
from .streaming import PipelineOptions, StreamOrchestrator


def setup_logging(config, override_level=None):
    """Configure logging based on config settings."""
    # Determine log level from override, config, or default
    log_level_str = (override_level or config.get_or("log.level", "info")).lower()

    # Map string levels to logging constants
    level_map = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "warning": logging.WARNING,
        "warn": logging.WARNING,  # alias
        "error": logging.ERROR,
        "critical": logging.CRITICAL,
    }

    log_level = level_map.get(log_level_str, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="[%(levelname)s] [%(name)s] %(message)s",  # Level first, then logger name
        handlers=[logging.StreamHandler()],
        force=True,  # Reset any existing configuration
    )


def build_orchestrator(settings: Settings) -> StreamOrchestrator:
    """Resolve geometry and wire pipelines to the sink; fails before any device is opened."""
    monitors = list_monitors(settings.monitors_override)
    n = len(settings.cams)
    if len(monitors) < n:
        raise ConfigurationError(
            f"{n} cams configured but only {len(monitors)} monitors found", "settings.cams"
        )

    regions = compute_regions(
        monitors[:n],
        settings.led_counts[:n],
        settings.indents[:n],
        settings.size,
        settings.wiring,
    )
    for i, monitor_regions in enumerate(regions):
        logging.getLogger("geometry").info(
            f"monitor {i} {monitors[i].width}x{monitors[i].height}: {len(monitor_regions)} regions"
        )

    options = PipelineOptions.from_settings(settings, monitors, regions)
    sink = SinkFactory.create(settings.sink)
    return StreamOrchestrator(options, sink, on_open_failure=settings.on_open_failure)


async def main(argv=None):
    """Main entry point: load config, lay out regions, stream until interrupted."""
    parser = argparse.ArgumentParser(description="Ambient LED lighting from captured screen frames")
    parser.add_argument("-c", "--config", default=None, help="Path to TOML/YAML/JSON config file")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["debug", "info", "warning", "warn", "error", "critical"],
        type=str.lower,
        help="Set logging level (overrides config file)",
    )
    args = parser.parse_args(argv)

    # Load configuration
    config = Config()
    config.load(args.config)

    # Setup logging
    setup_logging(config, override_level=args.log_level)
    logger = logging.getLogger("main")
    if args.config:
        logger.info(f"using config: {args.config}")

    settings = Settings.from_config(config)
    settings.log_info()

    orchestrator = build_orchestrator(settings)

    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):  # add_signal_handler is POSIX-only
        loop.add_signal_handler(signal.SIGTERM, orchestrator.stop)

    await orchestrator.run()


def run(argv=None) -> int:
    """Entry point for setuptools console scripts."""
    logger = logging.getLogger("main")
    try:
        asyncio.run(main(argv))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except AmbiwayError as e:
        logger.error(f"{e.stage} failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"runtime failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(run())
