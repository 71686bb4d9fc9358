"""Shared fixtures: an in-memory CloudWatch client."""
from typing import Dict, List, Set, Tuple

import numpy as np
import pytest
from botocore.exceptions import ClientError

from cloudwatch_exporter.config import ReporterConfig
from cloudwatch_exporter.reporter import CloudWatchReporter

LIST_PAGE_SIZE = 500


def throttling_error(operation: str) -> ClientError:
    return ClientError({"Error": {"Code": "Throttling", "Message": "Rate exceeded"}}, operation)


class FakePaginator:
    def __init__(self, handler):
        self.handler = handler

    def paginate(self, **kwargs):
        return self.handler(**kwargs)


class FakeCloudWatchClient:
    """Serves ListMetrics and GetMetricData from memory, paginated like the real API."""

    def __init__(self, seed: int = 42):
        self.rng = np.random.default_rng(seed)
        self.metrics: List[Dict] = []
        self.values: Dict[Tuple, List[float]] = {}
        self.calls: List[Tuple[str, Dict]] = []

        # Failure injection
        self.fail_list = False
        self.fail_query_calls: Set[int] = set()  # 1-based GetMetricData call numbers
        self.reverse_results = False
        self.results_per_page = None

    @staticmethod
    def _key(metric: Dict) -> Tuple:
        dims = tuple((d["Name"], d["Value"]) for d in metric.get("Dimensions", []))
        return metric["Namespace"], metric["MetricName"], dims

    def insert(self, namespace: str, metric_name: str, dimensions: List[Tuple[str, str]], values: List[float]):
        metric = {
            "Namespace": namespace,
            "MetricName": metric_name,
            "Dimensions": [{"Name": n, "Value": v} for n, v in dimensions],
        }
        self.metrics.append(metric)
        self.values[self._key(metric)] = list(values)

    def insert_random(self, namespace: str, metric_name: str, count: int):
        """Insert ``count`` metrics, one per instance, with random values."""
        for i in range(count):
            values = self.rng.uniform(0, 1000, size=3).tolist()
            self.insert(namespace, metric_name, [("InstanceId", f"i-{i:05d}")], values)

    def get_paginator(self, operation: str) -> FakePaginator:
        handlers = {
            "list_metrics": self._list_metrics,
            "get_metric_data": self._get_metric_data,
        }
        return FakePaginator(handlers[operation])

    def _list_metrics(self, **kwargs):
        self.calls.append(("list_metrics", kwargs))
        if self.fail_list:
            raise throttling_error("ListMetrics")

        matched = [
            m for m in self.metrics
            if kwargs.get("Namespace", m["Namespace"]) == m["Namespace"]
            and kwargs.get("MetricName", m["MetricName"]) == m["MetricName"]
        ]
        for start in range(0, max(len(matched), 1), LIST_PAGE_SIZE):
            yield {"Metrics": matched[start:start + LIST_PAGE_SIZE]}

    def _get_metric_data(self, **kwargs):
        self.calls.append(("get_metric_data", kwargs))
        call_number = sum(1 for op, _ in self.calls if op == "get_metric_data")
        if call_number in self.fail_query_calls:
            raise throttling_error("GetMetricData")

        queries = kwargs["MetricDataQueries"]
        if not 0 < len(queries) <= 500:
            raise ClientError(
                {"Error": {"Code": "ValidationError", "Message": "bad MetricDataQueries"}},
                "GetMetricData",
            )

        results = [
            {
                "Id": q["Id"],
                "Values": self.values.get(self._key(q["MetricStat"]["Metric"]), []),
                "StatusCode": "Complete",
            }
            for q in queries
        ]
        if self.reverse_results:
            results.reverse()

        per_page = self.results_per_page or len(results)
        for start in range(0, len(results), per_page):
            yield {"MetricDataResults": results[start:start + per_page]}

    def query_calls(self) -> List[Dict]:
        return [kwargs for op, kwargs in self.calls if op == "get_metric_data"]


@pytest.fixture
def cloudwatch_client():
    return FakeCloudWatchClient()


@pytest.fixture
def reporter(cloudwatch_client):
    return CloudWatchReporter(
        cloudwatch_client,
        ReporterConfig(delay_s=600, range_s=600, period_s=60, stat="Maximum"),
    )
