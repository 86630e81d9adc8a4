from __future__ import annotations

import argparse
import logging
import os
import sys

from fastapi import FastAPI
import uvicorn

from assessment_engine.api.http_app import SERVICE_NAME, build_app
from assessment_engine.config import EngineSettings, settings_from_env
from assessment_engine.domain.ids import new_run_id
from assessment_engine.logging_setup import configure_logging
from assessment_engine.services.bootstrap import RuntimeContainer, build_runtime_container

DEFAULT_PORT = 8000
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sales skills assessment service")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=None, help=f"Listen port (default {DEFAULT_PORT})")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
    parser.add_argument(
        "--dry-run-startup",
        action="store_true",
        help="Build settings, prompt contract and cache wiring, then exit",
    )
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (dev mode)")
    return parser.parse_args(argv)


def _log_level(name: str) -> int:
    name = name.strip().upper()
    return getattr(logging, name) if name in LOG_LEVELS else logging.INFO


def _service_app(settings: EngineSettings, container: RuntimeContainer, run_id: str) -> FastAPI:
    return build_app(
        run_id=run_id,
        api_deps=container.api_deps,
        allow_origin=settings.allow_origin,
        on_startup=container.on_startup,
        on_shutdown=container.on_shutdown,
    )


def create_runtime_app() -> FastAPI:
    """Factory used by `uvicorn --factory` in reload mode."""
    configure_logging(_log_level(os.getenv("LOG_LEVEL", "INFO")))
    settings = settings_from_env()
    return _service_app(settings, build_runtime_container(settings), new_run_id())


def run(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(_log_level(args.log_level))
    run_id = new_run_id()
    logger = logging.getLogger("runtime")

    try:
        settings = settings_from_env()
        container = build_runtime_container(settings)
    except (ValueError, OSError) as exc:
        sys.stderr.write(f"ERROR: {exc}\n")
        return 2

    context = {"service": SERVICE_NAME, "run_id": run_id}
    logger.info(
        "runtime initialized (llm=%s, cache=%s)",
        container.api_deps.llm_backend,
        container.api_deps.cache_backend,
        extra=context,
    )
    if args.dry_run_startup:
        logger.info("dry-run startup complete", extra=context)
        return 0

    port = DEFAULT_PORT if args.port is None else args.port
    if args.reload:
        os.environ["LOG_LEVEL"] = args.log_level
        uvicorn.run(
            "assessment_engine.main:create_runtime_app",
            host=args.host,
            port=port,
            log_level="warning",
            reload=True,
            factory=True,
        )
        return 0

    uvicorn.run(_service_app(settings, container, run_id), host=args.host, port=port, log_level="warning")
    return 0


def main() -> None:
    raise SystemExit(run())


if __name__ == "__main__":
    main()
