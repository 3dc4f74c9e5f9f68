"""Main entry point for the job dispatch engine's escalation worker."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import Optional, Tuple

from jobdispatch.config.environment import EnvironmentConfig
from jobdispatch.config.exceptions import ConfigurationError
from jobdispatch.config.loader import load_config
from jobdispatch.config.models import AppConfig
from jobdispatch.engine import build_engine
from jobdispatch.logging import get_logger
from jobdispatch.logging.config import configure_logging
from jobdispatch.persistence.database import close_database, init_database
from jobdispatch.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > environment > config file > INFO.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif env_config.log_level:
        pass
    elif app_config.logging and app_config.logging.level:
        env_config.log_level = app_config.logging.level
    else:
        env_config.log_level = "INFO"

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Job Dispatch Engine - escalates unclaimed job offers to eligible staff"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml or config/config.yaml)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Run a single escalation pass immediately and exit",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def main(argv=None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        log_format = app_config.logging.format if app_config.logging else "key-value"
        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(level=env_config.log_level, format_type=log_format, environment=environment)

        logger.info(
            "Job dispatch engine starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "escalation_enabled": app_config.escalation.enabled,
                "poll_interval_seconds": app_config.escalation.poll_interval_seconds,
                "thresholds_minutes": app_config.escalation.thresholds_minutes,
                "channel_configured": env_config.channel_configured,
                "operator_count": len(env_config.operator_recipient_ids),
                "log_format": log_format,
            },
        )

        engine = build_engine(app_config, env_config)
        logger.info("Engine initialized", extra={"event": "services.initialized"})

        if args.manual_run:
            logger.info(
                "Executing manual escalation pass",
                extra={"event": "service.manual_pass.starting"},
            )
            result = engine.escalation.run_pass()

            logger.info(
                f"Manual pass completed: {result.sent} sent, "
                f"{result.skipped} skipped, {result.failed} failed",
                extra={
                    "event": "service.manual_pass.completed",
                    "pass_id": result.pass_id,
                    "sent": result.sent,
                    "skipped": result.skipped,
                    "failed": result.failed,
                },
            )

            close_database()
            _log_stopped(start_time)
            return 1 if result.failed else 0

        shutdown_event = threading.Event()
        scheduler_service = None
        if app_config.escalation.enabled:
            scheduler_service = SchedulerService(
                pass_callable=engine.escalation.run_pass,
                interval_seconds=app_config.escalation.poll_interval_seconds,
                shutdown_event=shutdown_event,
            )
        else:
            logger.warning(
                "Escalation disabled; worker idles until stopped",
                extra={"event": "service.escalation_disabled"},
            )

        def stop(signum=None, frame=None):
            if signum is not None:
                logger.info(
                    f"Received signal {signum}, shutting down",
                    extra={"event": "service.signal_received", "signal": signum},
                )
            if scheduler_service:
                scheduler_service.shutdown(wait=False)
            shutdown_event.set()

        signal.signal(signal.SIGINT, stop)
        signal.signal(signal.SIGTERM, stop)

        if scheduler_service:
            scheduler_service.start()

        logger.info(
            "Worker started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            stop()

        close_database()
        _log_stopped(start_time)
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


def _log_stopped(start_time: float) -> None:
    logger.info(
        "Job dispatch engine stopped",
        extra={
            "event": "service.stopping",
            "uptime_seconds": round(time.time() - start_time, 2),
        },
    )


if __name__ == "__main__":
    sys.exit(main())
