"""CloudWatch reporter: lists metrics and fetches their latest values via boto3."""
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Sequence
import logging

from botocore.exceptions import BotoCoreError, ClientError

from cloudwatch_exporter.config import MAX_BATCH_SIZE, ReporterConfig
from cloudwatch_exporter.errors import ListError, QueryError
from cloudwatch_exporter.models import MetricIdentity, QueryResult

logger = logging.getLogger(__name__)

WILDCARD = "*"


def query_id(index: int) -> str:
    """Positional id of the query at ``index`` within its batch."""
    return f"n{index}"


class CloudWatchReporter:
    """Wraps a boto3 CloudWatch client behind the two calls the collector needs."""

    def __init__(self, client, config: ReporterConfig = None):
        """
        Initialize the reporter.

        Args:
            client: boto3 CloudWatch client (anything exposing get_paginator)
            config: Query window and statistic settings
        """
        self.client = client
        self.config = config or ReporterConfig()

    def list_metrics(self, namespace: str, metric_name: str) -> List[MetricIdentity]:
        """Return all metrics matching the filters; "*" matches any value."""
        params = {}
        if namespace != WILDCARD:
            params["Namespace"] = namespace
        if metric_name != WILDCARD:
            params["MetricName"] = metric_name

        metrics: List[MetricIdentity] = []
        pages = 0
        try:
            for page in self.client.get_paginator("list_metrics").paginate(**params):
                pages += 1
                metrics.extend(MetricIdentity.from_api(m) for m in page.get("Metrics", []))
        except (ClientError, BotoCoreError) as e:
            raise ListError(f"ListMetrics failed for {namespace}/{metric_name}: {e}") from e

        logger.debug(f"ListMetrics {namespace}/{metric_name}: {len(metrics)} metrics in {pages} pages")
        return metrics

    def _time_window(self):
        end = datetime.now(timezone.utc) - timedelta(seconds=self.config.delay_s)
        start = end - timedelta(seconds=self.config.range_s)
        return start, end

    def _build_queries(self, batch: Sequence[MetricIdentity]) -> List[Dict]:
        return [
            {
                "Id": query_id(i),
                "MetricStat": {
                    "Metric": metric.to_api(),
                    "Period": self.config.period_s,
                    "Stat": self.config.stat,
                },
                "ReturnData": True,
            }
            for i, metric in enumerate(batch)
        ]

    def get_metrics_results(self, batch: Sequence[MetricIdentity]) -> List[QueryResult]:
        """
        Fetch values for a batch of metrics.

        Returns one QueryResult per batch member, in batch order, with id
        "n<index>". Values are ordered most recent first.
        """
        if not batch:
            raise ValueError("GetMetricData requires at least one query")
        if len(batch) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch of {len(batch)} exceeds the limit of {MAX_BATCH_SIZE} queries")

        queries = self._build_queries(batch)
        start, end = self._time_window()
        values: Dict[str, List[float]] = {q["Id"]: [] for q in queries}

        pages = 0
        try:
            paginator = self.client.get_paginator("get_metric_data")
            for page in paginator.paginate(
                MetricDataQueries=queries,
                StartTime=start,
                EndTime=end,
                ScanBy="TimestampDescending",
            ):
                pages += 1
                for result in page.get("MetricDataResults", []):
                    values.setdefault(result["Id"], []).extend(result.get("Values", []))
        except (ClientError, BotoCoreError) as e:
            raise QueryError(f"GetMetricData failed for batch of {len(batch)}: {e}") from e

        logger.debug(f"GetMetricData: {len(queries)} queries in {pages} pages")
        return [QueryResult(id=q["Id"], values=values[q["Id"]]) for q in queries]
