"""Mapping of CloudWatch namespaces and metric names to Prometheus names."""
import re
from typing import List

# Leading digits are not rewritten
INVALID_NAME_CHARS = re.compile(r"[^a-zA-Z0-9_:]")

DELIMITERS = {"-", "_", " "}


def _is_lower(ch: str) -> bool:
    return "a" <= ch <= "z"


def _is_upper(ch: str) -> bool:
    return "A" <= ch <= "Z"


def sanitize(value: str) -> str:
    """Replace characters Prometheus does not allow in metric names with '_'."""
    return INVALID_NAME_CHARS.sub("_", value)


def snake_case(value: str) -> str:
    """
    Convert a name to lower snake case.

    A new word starts at a lower-to-upper change ("networkIn") and at the
    last capital of an acronym ("CPUUtilization"). Digits never start a word,
    so "5XX" stays "5xx". Runs of delimiters collapse to one "_", but a trailing
    delimiter is always kept: "EBSIOBalance_" becomes "ebsio_balance_".
    """
    chars = value.strip()
    last = len(chars) - 1
    out: List[str] = []
    for i, curr in enumerate(chars):
        prev = chars[i - 1] if i > 0 else ""
        nxt = chars[i + 1] if i < last else ""
        if curr in DELIMITERS:
            if prev not in DELIMITERS or i == last:
                out.append("_")
            continue
        if _is_upper(curr) and (_is_lower(prev) or (_is_upper(prev) and _is_lower(nxt))):
            out.append("_")
        out.append(curr.lower())
    return "".join(out)


def metric_name(namespace: str, name: str) -> str:
    """Public Prometheus name for a CloudWatch metric."""
    return f"{snake_case(sanitize(namespace))}_{snake_case(sanitize(name))}"
