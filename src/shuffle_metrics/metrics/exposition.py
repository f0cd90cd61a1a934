"""
Serialization of scope snapshots.

JSON shape (one object per scope):

    {"timeStamp": 1700000000000, "metrics": [{"name": ..., "labelValues": [...], "value": ...}]}

Prometheus text format is also supported for scraping.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from typing import Any

from .labeled_counter import LabeledCounter
from .registry import MetricScope, MetricsRegistry
from .sample import Sample
from .sources import TAGS_LABEL

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"


def snapshot_payload(registry: MetricsRegistry, scope: str | MetricScope) -> dict[str, Any]:
    """Build the JSON document for one scope."""
    samples = registry.snapshot(scope)
    return {
        "timeStamp": int(time.time() * 1000),
        "metrics": [sample.to_dict() for sample in samples],
    }


def _label_schemas(registry: MetricsRegistry, scope: MetricScope) -> dict[str, tuple[str, ...]]:
    if scope != MetricScope.SERVER:
        return {}
    return {
        family.name: family.label_names
        for family in registry.families()
        if isinstance(family, LabeledCounter)
    }


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _format_value(value: float) -> str:
    if float(value).is_integer():
        return f"{value:.1f}"
    return repr(float(value))


def to_prometheus(registry: MetricsRegistry, scope: str | MetricScope) -> str:
    """Export one scope in Prometheus text format."""
    resolved = MetricScope.parse(scope)
    samples: Iterable[Sample] = registry.snapshot(resolved)

    schemas = _label_schemas(registry, resolved)

    lines: list[str] = []
    seen: set[str] = set()
    for sample in samples:
        if sample.name not in seen:
            seen.add(sample.name)
            lines.append(f"# TYPE {sample.name} {sample.kind.value}")

        if sample.label_values:
            names = schemas.get(sample.name, (TAGS_LABEL,))
            rendered = ",".join(
                f'{label}="{_escape(value)}"'
                for label, value in zip(names, sample.label_values, strict=False)
            )
            lines.append(f"{sample.name}{{{rendered}}} {_format_value(sample.value)}")
        else:
            lines.append(f"{sample.name} {_format_value(sample.value)}")

    return "\n".join(lines) + "\n"
