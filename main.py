#!/usr/bin/env python3

##############################################
#                                            #
#       CAPABILITY ORCHESTRATOR SERVER       #
#                                            #
##############################################

import argparse
import os
import sys

from dotenv import load_dotenv

from orchestrator import Orchestrator
from orchestrator.exceptions import ConfigurationError
from orchestrator.server import TRANSPORTS, serve
from utils.logger import get_logger, init_logger
from utils.observability import setup_telemetry

logger = get_logger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Route tasks and run workflows across capability providers.")
    parser.add_argument("--config", "-c", help="Orchestration YAML (default: $ORCHESTRATOR_CONFIG or config/orchestration.yaml)")
    parser.add_argument("--logging-config", default="config.json", help="Logging JSON config")
    parser.add_argument("--transport", "-t", choices=TRANSPORTS, default="stdio", help="MCP transport")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    load_dotenv()
    # stdout carries the MCP protocol on the stdio transport
    init_logger(args.logging_config, stream=sys.stderr if args.transport == "stdio" else None)
    if os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        setup_telemetry()
        logger.info("telemetry_enabled", endpoint=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))

    try:
        orchestrator = Orchestrator.from_config_file(args.config)
    except ConfigurationError as exc:
        logger.error("orchestrator_config_invalid", error=str(exc), problems=exc.problems)
        return 2

    logger.info("🛰️ Orchestrator ready", transport=args.transport)
    try:
        serve(orchestrator, transport=args.transport)
    except KeyboardInterrupt:
        logger.info("🛰️ Bye!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
