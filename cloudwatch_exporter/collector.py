"""Prometheus collector that pulls CloudWatch metrics in bounded batches."""
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Union
import logging
import re
import threading
import time

from prometheus_client.core import GaugeMetricFamily, UnknownMetricFamily
from prometheus_client.metrics_core import Metric
from prometheus_client.registry import Collector

from cloudwatch_exporter.config import MAX_BATCH_SIZE
from cloudwatch_exporter.errors import ContractViolation, ListError, QueryError
from cloudwatch_exporter.models import Descriptor, ErrorSample, MetricIdentity, QueryResult, Sample
from cloudwatch_exporter.naming import metric_name as prometheus_name

logger = logging.getLogger(__name__)

LIST_METRICS = "list_metrics"
GET_METRIC_DATA = "get_metric_data"

ERROR_DESCRIPTOR = Descriptor("cloudwatch_error", "Error collecting metrics", ("operation",))
PLACEHOLDER_DESCRIPTOR = Descriptor(
    "cloudwatch_placeholder",
    "Placeholder; CloudWatch metrics are discovered at scrape time",
)
SCRAPE_DURATION_NAME = "cloudwatch_scrape_duration_seconds"

# Families the collector emits itself
RESERVED_NAMES = frozenset({ERROR_DESCRIPTOR.name, SCRAPE_DURATION_NAME})

CollectedItem = Union[Sample, ErrorSample]

QUERY_ID = re.compile(r"n([0-9]+)")


def batched(metrics: Sequence[MetricIdentity], size: int) -> Iterator[Sequence[MetricIdentity]]:
    """Split metrics into consecutive batches of at most ``size``."""
    for start in range(0, len(metrics), size):
        yield metrics[start:start + size]


def parse_query_id(result_id: str, batch_length: int) -> int:
    """Recover the batch position from an "n<index>" query id."""
    match = QUERY_ID.fullmatch(result_id)
    if match is None:
        raise ContractViolation(f"Malformed query id {result_id!r}")
    index = int(match.group(1))
    if index >= batch_length:
        raise ContractViolation(f"Query id {result_id!r} out of range for batch of {batch_length}")
    return index


class CloudWatchCollector(Collector):
    """
    Exposes CloudWatch metrics matching a namespace/metric-name filter.

    Every scrape lists the matching metrics, fetches their values in batches
    of at most ``batch_size`` and yields one sample per metric that returned
    a value. Descriptors are cached for the collector's lifetime so samples
    of the same shape share one instance across scrapes.
    """

    def __init__(self, reporter, namespace: str = "*", metric_name: str = "*", batch_size: int = MAX_BATCH_SIZE):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.reporter = reporter
        self.namespace = namespace
        self.metric_name = metric_name
        self.batch_size = batch_size

        # Keyed by (prometheus name, dimension names)
        self.descriptors: Dict[Tuple[str, Tuple[str, ...]], Descriptor] = {}

        # Serializes scrapes; the descriptor cache is not shared safely
        self._lock = threading.Lock()

    def describe(self) -> List[Metric]:
        """Advertise a placeholder; real descriptors only appear in collect()."""
        return [UnknownMetricFamily(PLACEHOLDER_DESCRIPTOR.name, PLACEHOLDER_DESCRIPTOR.documentation)]

    def descriptor_for(self, metric: MetricIdentity) -> Descriptor:
        """Return the cached descriptor for the metric's name and label shape."""
        name = prometheus_name(metric.namespace, metric.name)
        key = (name, metric.dimension_names)
        desc = self.descriptors.get(key)
        if desc is None:
            logger.debug(f"Creating descriptor {name} with labels {list(key[1])}")
            desc = Descriptor(
                name,
                f"CloudWatch metric {metric.namespace}/{metric.name}",
                metric.dimension_names,
            )
            self.descriptors[key] = desc
        return desc

    def samples(self, namespace: Optional[str] = None, metric_name: Optional[str] = None) -> Iterator[CollectedItem]:
        """
        Yield samples for all metrics matching the filters.

        A failed listing yields a single ErrorSample and ends the scrape; a
        failed batch yields an ErrorSample and the next batch is processed.
        ContractViolation is never caught here.
        """
        namespace = namespace or self.namespace
        metric_name = metric_name or self.metric_name

        try:
            metrics = self.reporter.list_metrics(namespace, metric_name)
        except ListError as e:
            logger.error(f"Failed to list metrics: {e}")
            yield ErrorSample(ERROR_DESCRIPTOR, LIST_METRICS, e)
            return
        logger.debug(f"List metrics returned {len(metrics)} metrics for {namespace}/{metric_name}")

        for batch in batched(metrics, self.batch_size):
            yield from self._collect_batch(batch)

    def _collect_batch(self, batch: Sequence[MetricIdentity]) -> Iterator[CollectedItem]:
        # The API rejects requests without queries
        if not batch:
            return

        try:
            results: List[QueryResult] = self.reporter.get_metrics_results(batch)
        except QueryError as e:
            logger.error(f"Failed to get metric results: {e}")
            yield ErrorSample(ERROR_DESCRIPTOR, GET_METRIC_DATA, e)
            return

        if len(results) != len(batch):
            raise ContractViolation(f"Got {len(results)} results for batch of {len(batch)} metrics")

        seen = set()
        for result in results:
            idx = parse_query_id(result.id, len(batch))
            if idx in seen:
                raise ContractViolation(f"Duplicate query id {result.id!r}")
            seen.add(idx)

            metric = batch[idx]
            if not result.values:
                logger.debug(f"No values for {metric}")
                continue

            desc = self.descriptor_for(metric)
            yield Sample(desc, metric.dimension_values, float(result.values[0]))

    def collect_into(self, sink, namespace: Optional[str] = None, metric_name: Optional[str] = None):
        """
        Put every collected item onto ``sink``.

        Blocks on each put; with a bounded queue the caller must drain it
        from another thread. The caller signals completion after return.
        """
        for item in self.samples(namespace, metric_name):
            sink.put(item)

    def collect(self) -> Iterator[Metric]:
        """Collect metrics for a Prometheus scrape."""
        with self._lock:
            scrape_start = time.time()
            families: Dict[str, UnknownMetricFamily] = {}
            errors = {LIST_METRICS: 0, GET_METRIC_DATA: 0}
            skipped = set()

            for item in self.samples():
                if isinstance(item, ErrorSample):
                    errors[item.operation] += 1
                    continue
                # One family per name; label shapes may differ between its samples
                family = families.get(item.descriptor.name)
                if family is None:
                    if item.descriptor.name in RESERVED_NAMES:
                        if item.descriptor.name not in skipped:
                            logger.warning(f"Skipping {item.descriptor.documentation}: {item.descriptor.name} is reserved")
                            skipped.add(item.descriptor.name)
                        continue
                    family = UnknownMetricFamily(item.descriptor.name, item.descriptor.documentation)
                    families[item.descriptor.name] = family
                family.add_sample(item.descriptor.name, item.labels, item.value)

            yield from families.values()

            error_family = GaugeMetricFamily(
                ERROR_DESCRIPTOR.name,
                ERROR_DESCRIPTOR.documentation,
                labels=list(ERROR_DESCRIPTOR.label_names),
            )
            for operation, count in errors.items():
                error_family.add_metric([operation], count)
            yield error_family

            duration = GaugeMetricFamily(
                SCRAPE_DURATION_NAME,
                "Time spent collecting metrics from CloudWatch",
            )
            duration.add_metric([], time.time() - scrape_start)
            yield duration
