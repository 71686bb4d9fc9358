"""Main entry point for the CloudWatch exporter."""
import argparse
import logging
import signal
import sys
import threading

import boto3
import structlog
from prometheus_client import CollectorRegistry, start_http_server

from cloudwatch_exporter.collector import CloudWatchCollector
from cloudwatch_exporter.config import AWSConfig, Config, load_config
from cloudwatch_exporter.reporter import CloudWatchReporter


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering stdlib log records as one JSON object per line."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def setup_logging(log_level: str, log_format: str):
    """Setup logging configuration."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    if log_format == "json":
        handler = logging.StreamHandler()
        handler.setFormatter(json_formatter())
        logging.basicConfig(level=level, handlers=[handler])
    else:
        logging.basicConfig(
            level=level,
            format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    # Reduce noise from some libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_client(aws: AWSConfig):
    """Create the boto3 CloudWatch client from the default credential chain."""
    session = boto3.Session(profile_name=aws.profile, region_name=aws.region)
    return session.client("cloudwatch", endpoint_url=aws.endpoint_url)


def build_registry(config: Config, client) -> CollectorRegistry:
    """Register a CloudWatch collector on a dedicated registry."""
    # Custom registry so default Python/process metrics are not exported
    registry = CollectorRegistry()
    reporter = CloudWatchReporter(client, config.reporter)
    collector = CloudWatchCollector(
        reporter,
        namespace=config.exporter.namespace,
        metric_name=config.exporter.metric_name,
        batch_size=config.exporter.batch_size,
    )
    registry.register(collector)
    return registry


def main():
    """Main function."""
    parser = argparse.ArgumentParser(
        description="CloudWatch Exporter - Expose AWS CloudWatch metrics to Prometheus"
    )
    parser.add_argument(
        "--config",
        "-c",
        required=True,
        help="Path to configuration YAML file"
    )

    args = parser.parse_args()

    # Load configuration
    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.global_.log_level, config.global_.log_format)
    logger = logging.getLogger(__name__)

    logger.info(f"Configuration loaded from: {args.config}")
    logger.info(
        f"Collecting {config.exporter.namespace}/{config.exporter.metric_name} "
        f"in batches of {config.exporter.batch_size}"
    )

    try:
        registry = build_registry(config, create_client(config.aws))
        start_http_server(
            config.exporter.port,
            addr=config.exporter.bind_address,
            registry=registry
        )
    except Exception as e:
        logger.error(f"Failed to start exporter: {e}", exc_info=True)
        sys.exit(1)

    logger.info(
        f"CloudWatch exporter listening on "
        f"{config.exporter.bind_address}:{config.exporter.port}/metrics"
    )

    stop = threading.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        stop.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    stop.wait()


if __name__ == "__main__":
    main()
