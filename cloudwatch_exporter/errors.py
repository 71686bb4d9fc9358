"""Exceptions raised at the reporter boundary and inside the collector."""


class ExporterError(Exception):
    """Base class for exporter errors."""


class ListError(ExporterError):
    """Listing metrics from CloudWatch failed."""


class QueryError(ExporterError):
    """Fetching metric data for a batch failed."""


class ContractViolation(ExporterError):
    """
    The reporter returned results that cannot be correlated with the batch.

    Never folded into an error sample: continuing would attribute values to
    the wrong metrics.
    """
