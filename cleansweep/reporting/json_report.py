# JSON output: the batch serialized through its pydantic models.

from __future__ import annotations

import json
from typing import Any

from cleansweep.findings.models import BatchResult


def batch_to_dict(batch: BatchResult) -> dict[str, Any]:
    """Plain-data form of a batch: one entry per file, plus files not analyzed."""
    return {
        "files": [d.model_dump(mode="json") for d in batch.diagnostics],
        "skipped": [str(p) for p in batch.skipped],
        "unreadable": [str(p) for p in batch.unreadable],
        "summary": {
            "files": len(batch.diagnostics),
            "findings": len(batch.findings),
            "by_severity": _count_by_severity(batch),
        },
    }


def _count_by_severity(batch: BatchResult) -> dict[str, int]:
    counts: dict[str, int] = {}
    for finding in batch.findings:
        counts[finding.severity.value] = counts.get(finding.severity.value, 0) + 1
    return dict(sorted(counts.items()))


def render_json(batch: BatchResult) -> str:
    return json.dumps(batch_to_dict(batch), indent=2, sort_keys=True)
