"""Versioned contracts for menu-studio run summaries."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from menu_studio import __version__

CONTRACT_VERSIONS = {
    "menu_studio.transform_summary": "1.0.0",
    "menu_studio.modifier_summary": "1.0.0",
}

SUMMARY_CONTRACTS = {
    "menu": "menu_studio.transform_summary",
    "modifiers": "menu_studio.modifier_summary",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    script: str,
    input_path: Path | None,
    status: str = "ok",
    output_path: Path | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "script": script,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path) if input_path else None,
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def run_status(result, dropped_rows: int = 0) -> str:
    if result.stats.zero_items:
        return "empty"
    if result.partial or dropped_rows:
        return "partial"
    return "ok"


def build_transform_summary(
    result,
    *,
    input_path: Path | None = None,
    output_path: Path | None = None,
    warnings: list[str] | None = None,
    dropped_rows: int = 0,
) -> dict[str, Any]:
    """
    JSON-ready summary of one ``TransformResult``.

    ``dropped_rows`` counts input rows the loader could not parse; any makes the run partial.
    """
    stats = result.stats
    messages = list(warnings or []) + [anomaly.message for anomaly in stats.anomalies]
    if stats.failed_batches:
        messages.append(f"{stats.failed_batches} enrichment batch(es) failed; affected records were left as they were")
    if stats.rate_limited:
        messages.append(f"Rate limit reached; {stats.skipped_batches} batch(es) were not started")

    return {
        "contract": build_contract(SUMMARY_CONTRACTS[result.mode]),
        "tool_version": __version__,
        "mode": result.mode,
        "columns": list(result.columns),
        "stats": stats.as_dict(),
        "run_summary": build_run_summary(
            tool="menu-studio",
            script="modifiers" if result.mode == "modifiers" else "transform",
            input_path=input_path,
            status=run_status(result, dropped_rows),
            output_path=output_path,
            metrics={
                "total_raw_rows": stats.total_raw_rows,
                "items": stats.total_items_processed,
                "arabic_translations_found": stats.arabic_translations_found,
                "anomalies": len(stats.anomalies),
                "dropped_rows": dropped_rows,
                "failed_batches": stats.failed_batches,
                "currencies": list(stats.currencies_detected),
            },
            warnings=messages,
        ),
    }
