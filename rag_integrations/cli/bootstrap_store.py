"""Vector store bootstrap command.

Runs the one-time schema setup of the configured vector store (pgvector
extension/table/index or the Weaviate class), then reports its health and
the number of stored vectors.

Settings come from the process environment, optionally overlaid with a
``.env`` file, using the same ``RAG_*`` names as the adapters. Logging and
metrics defaults come from ``BaseConfig``.
"""

import argparse
import asyncio
import os
import sys
from typing import Dict, List, Optional

from rag_integrations.common.config import BaseConfig, load_env_file
from rag_integrations.common.errors import IntegrationError
from rag_integrations.common.logging import configure_logging, get_logger
from rag_integrations.common.metrics import MetricsCollector, get_metrics_collector
from rag_integrations.vector_store.factory import create_vector_store_from_env

logger = get_logger("cli.bootstrap_store")


def build_env(env_file: Optional[str], backend: Optional[str]) -> Dict[str, str]:
    """Merge the process environment, an optional env file and CLI overrides."""
    env = dict(os.environ)
    if env_file:
        env.update(load_env_file(env_file))
    if backend:
        env["RAG_VECTOR_BACKEND"] = backend
    return env


async def bootstrap(env: Dict[str, str], metrics: Optional[MetricsCollector] = None) -> int:
    """Initialize the store described by ``env`` and log health and count."""
    store = create_vector_store_from_env(env, metrics=metrics)
    async with store:
        healthy = await store.health_check()
        if not healthy:
            logger.error("Vector store is not healthy", backend=store.backend)
            return 1

        total = await store.count()
        logger.info("Vector store bootstrap completed", backend=store.backend, count=total)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main bootstrap function."""
    config = BaseConfig()

    parser = argparse.ArgumentParser(description="Bootstrap the configured vector store")
    parser.add_argument("--env-file", help="Read RAG_* settings from this file as well")
    parser.add_argument("--backend", choices=["pgvector", "weaviate"], help="Override RAG_VECTOR_BACKEND")
    parser.add_argument("--log-level", default=config.log_level, help="Log level (default: RAG_LOG_LEVEL)")
    parser.add_argument(
        "--log-format",
        default=config.log_format,
        choices=["json", "console"],
        help="Log format (default: RAG_LOG_FORMAT)"
    )

    args = parser.parse_args(argv)

    configure_logging(config.service_name, log_level=args.log_level, log_format=args.log_format, env=config.env)
    metrics = get_metrics_collector(config.service_name) if config.metrics_enabled else None

    try:
        return asyncio.run(bootstrap(build_env(args.env_file, args.backend), metrics=metrics))
    except IntegrationError as e:
        logger.error("Vector store bootstrap failed", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
