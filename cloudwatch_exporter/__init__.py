"""Prometheus exporter for AWS CloudWatch metrics."""

__version__ = "0.1.0"
