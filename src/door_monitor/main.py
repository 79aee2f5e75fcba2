from __future__ import annotations

import argparse
import logging

from .config import MonitorSettings
from .logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Door Monitor - access monitoring with face recognition")
    parser.add_argument("--print-config", action="store_true", help="Print resolved configuration and exit.")
    parser.add_argument(
        "--http-serve",
        action="store_true",
        help="Run the monitor (triggers, camera, recognition) with its HTTP API.",
    )
    return parser


def run(argv: list[str] | None = None, cfg: MonitorSettings | None = None) -> int:
    """
    Door Monitor entrypoint.
    """
    try:
        args = build_parser().parse_args(argv)

        # Load settings from environment / .env
        cfg = cfg or MonitorSettings()

        # Setup logging using configured level
        configure_logging(cfg.log_level)

        logger.info("Door Monitor starting")
        logger.info(
            "Resolved config: site_id=%s photos=%s recognition=%s triggers=%s:%s",
            cfg.site_id, cfg.photos_dir, cfg.recognition_base_url, cfg.trigger_tcp_host, cfg.trigger_tcp_port
        )

        if args.print_config:
            print(cfg.model_dump())
            return 0

        if args.http_serve:
            import uvicorn
            from .monitor_api import create_app

            app = create_app(cfg)

            logger.info("Starting Door Monitor HTTP API at http://%s:%s", cfg.http_host, cfg.http_port)
            uvicorn.run(
                app,
                host=cfg.http_host,
                port=cfg.http_port,
                log_level=cfg.log_level.lower(),
            )
            return 0

        logger.info("Nothing to do. Use --print-config or --http-serve.")
        return 0

    except Exception:
        # Log unexpected exceptions so the monitor is diagnosable.
        logger.exception("Door Monitor crashed due to an unexpected error")
        if cfg is not None and (cfg.debug or cfg.log_level.upper() == "DEBUG"):
            raise
        return 1


if __name__ == "__main__":
    raise SystemExit(run())
