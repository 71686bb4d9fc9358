"""Data structures passed between the reporter and the collector."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


@dataclass(frozen=True)
class MetricIdentity:
    """A CloudWatch metric: namespace, name and ordered dimensions."""
    namespace: str
    name: str
    dimensions: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self):
        names = self.dimension_names
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate dimension names in {self.namespace}/{self.name}: {names}")

    @property
    def dimension_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.dimensions)

    @property
    def dimension_values(self) -> Tuple[str, ...]:
        return tuple(value for _, value in self.dimensions)

    @classmethod
    def from_api(cls, metric: Dict[str, Any]) -> "MetricIdentity":
        """Build an identity from a ListMetrics response entry."""
        return cls(
            namespace=metric["Namespace"],
            name=metric["MetricName"],
            dimensions=tuple(
                (d["Name"], d["Value"]) for d in metric.get("Dimensions", [])
            ),
        )

    def to_api(self) -> Dict[str, Any]:
        """Render the identity in the shape GetMetricData expects."""
        return {
            "Namespace": self.namespace,
            "MetricName": self.name,
            "Dimensions": [{"Name": n, "Value": v} for n, v in self.dimensions],
        }

    def __str__(self) -> str:
        dims = ",".join(f"{n}={v}" for n, v in self.dimensions)
        return f"{self.namespace}/{self.name}{{{dims}}}"


@dataclass
class QueryResult:
    """Values returned for one query of a batch, addressed by its query id."""
    id: str
    values: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class Descriptor:
    """Name, help text and label names shared by samples of one metric shape."""
    name: str
    documentation: str
    label_names: Tuple[str, ...] = ()


@dataclass
class Sample:
    """A single metric value with label values aligned to its descriptor."""
    descriptor: Descriptor
    label_values: Tuple[str, ...]
    value: float

    def __post_init__(self):
        if len(self.label_values) != len(self.descriptor.label_names):
            raise ValueError(
                f"{self.descriptor.name}: got {len(self.label_values)} label values "
                f"for labels {list(self.descriptor.label_names)}"
            )

    @property
    def labels(self) -> Dict[str, str]:
        return dict(zip(self.descriptor.label_names, self.label_values))


@dataclass
class ErrorSample:
    """Signals that a CloudWatch call failed during a scrape."""
    descriptor: Descriptor
    operation: str
    error: Exception
