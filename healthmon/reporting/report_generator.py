"""Report generation in JSON, HTML and CSV formats."""

import csv
import html
import io
import json
import logging
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..config.models import Target
from ..services.history_store import HistoryStatistics
from ..utils.metrics import BatchSummary, Sample

CSV_COLUMNS = [
    "cycle",
    "timestamp",
    "collection_time",
    "rss_mb",
    "memory_usage_percentage",
    "thread_count",
    "uptime_seconds",
    "total_targets",
    "healthy_targets",
    "failing_targets",
    "health_percentage",
    "avg_elapsed_ms",
    "min_elapsed_ms",
    "max_elapsed_ms",
    "overall_status",
    "cycle_duration_ms",
]


def _format_time(timestamp: Optional[float]) -> str:
    if timestamp is None:
        return ""
    return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")


def _fmt(value: Any, digits: int = 1) -> str:
    if value is None:
        return "n/a"
    if isinstance(value, float):
        return f"{value:.{digits}f}"
    return str(value)


class ReportGenerator:
    """
    Renders collected samples and history statistics as reports.

    Works only on the report dict built by ``build_report``, so callers
    never need to know how the history store keeps its samples.
    """

    FORMATS = ("json", "html", "csv")

    def __init__(self, output_dir: str = "./reports", logger: logging.Logger = None):
        """
        Initialize report generator.

        Args:
            output_dir: Directory for written reports
            logger: Optional logger instance
        """
        self.output_dir = Path(output_dir)
        self.logger = logger or logging.getLogger(__name__)

    def build_report(
        self,
        samples: Sequence[Sample],
        statistics: HistoryStatistics,
        targets: Sequence[Target] = (),
        interval_seconds: Optional[float] = None,
        generated_at: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Assemble the report structure shared by all formats.

        Args:
            samples: Historical samples, oldest first
            statistics: Statistics over those samples
            targets: Currently configured targets
            interval_seconds: Sampling interval, if sampling is configured
            generated_at: Report time (defaults to now)

        Returns:
            dict: Report data
        """
        generated_at = time.time() if generated_at is None else generated_at
        current = samples[-1] if samples else None

        return {
            "report_generated_at": generated_at,
            "report_generated_time": _format_time(generated_at),
            "monitoring_interval_seconds": interval_seconds,
            "current_sample": current.to_dict() if current else None,
            "historical_data": [s.to_dict() for s in samples],
            "historical_data_count": len(samples),
            "summary_statistics": statistics.to_dict(),
            "targets": [
                {
                    "name": t.name,
                    "address": t.address,
                    "kind": t.kind.value,
                    "expected_status": t.expected_status,
                    "timeout_ms": t.timeout_ms,
                }
                for t in targets
            ],
        }

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_json(self, report: Dict[str, Any]) -> str:
        return json.dumps(report, indent=2, default=str)

    def render_csv(self, report: Dict[str, Any]) -> str:
        """One CSV row per historical sample."""
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS, lineterminator="\n")
        writer.writeheader()

        for record in report.get("historical_data", []):
            runtime = record.get("runtime", {})
            summary = record.get("summary", {})
            writer.writerow({
                "cycle": record.get("cycle"),
                "timestamp": record.get("timestamp"),
                "collection_time": _format_time(record.get("timestamp")),
                "rss_mb": runtime.get("rss_mb", ""),
                "memory_usage_percentage": runtime.get("memory_usage_percentage", ""),
                "thread_count": runtime.get("thread_count", ""),
                "uptime_seconds": runtime.get("uptime_seconds", ""),
                "total_targets": summary.get("total"),
                "healthy_targets": summary.get("success_count"),
                "failing_targets": ";".join(summary.get("failing_targets", [])),
                "health_percentage": summary.get("success_ratio"),
                "avg_elapsed_ms": summary.get("avg_elapsed_ms"),
                "min_elapsed_ms": summary.get("min_elapsed_ms"),
                "max_elapsed_ms": summary.get("max_elapsed_ms"),
                "overall_status": summary.get("status"),
                "cycle_duration_ms": record.get("duration_ms"),
            })

        return buffer.getvalue()

    def render_html(self, report: Dict[str, Any]) -> str:
        """Single-page HTML summary of current status and history."""
        current = report.get("current_sample")
        stats = report.get("summary_statistics", {})
        esc = html.escape

        parts = [
            "<!DOCTYPE html>",
            '<html lang="en">',
            "<head>",
            '    <meta charset="UTF-8">',
            "    <title>Health Monitor Report</title>",
            "    <style>",
            "        body { font-family: Arial, sans-serif; margin: 20px; }",
            "        table { border-collapse: collapse; margin-bottom: 20px; }",
            "        th, td { border: 1px solid #ccc; padding: 4px 8px; text-align: left; }",
            "        .HEALTHY { color: #2e7d32; }",
            "        .UNHEALTHY { color: #c62828; }",
            "        .NO_TARGETS { color: #757575; }",
            "    </style>",
            "</head>",
            "<body>",
            "    <h1>Health Monitor Report</h1>",
            f"    <p>Generated: {esc(report.get('report_generated_time', ''))}</p>",
            "    <h2>Current Status</h2>",
        ]

        if current is None:
            parts.append("    <p>No samples collected yet.</p>")
        else:
            summary = current["summary"]
            status = summary["status"]
            parts += [
                f'    <p>Overall status: <strong class="{esc(status)}">{esc(status)}</strong> '
                f'({summary["success_count"]}/{summary["total"]} targets healthy, '
                f'{_fmt(summary["success_ratio"])}%)</p>',
                "    <table>",
                "        <tr><th>Target</th><th>Address</th><th>Status</th>"
                "<th>Code</th><th>Time (ms)</th><th>Error</th></tr>",
            ]
            for result in current.get("results", []):
                state = "HEALTHY" if result["success"] else "UNHEALTHY"
                parts.append(
                    f'        <tr><td>{esc(result["target_name"])}</td>'
                    f'<td>{esc(result["address"])}</td>'
                    f'<td class="{state}">{state}</td>'
                    f'<td>{result["status_code"]}</td>'
                    f'<td>{_fmt(result["elapsed_ms"])}</td>'
                    f'<td>{esc(result.get("error") or "")}</td></tr>'
                )
            parts.append("    </table>")

            runtime = current.get("runtime", {})
            if runtime:
                parts += ["    <h3>Runtime Metrics</h3>", "    <table>"]
                for key in sorted(runtime):
                    parts.append(
                        f"        <tr><th>{esc(str(key))}</th><td>{esc(_fmt(runtime[key], 2))}</td></tr>"
                    )
                parts.append("    </table>")

        parts.append("    <h2>Historical Summary</h2>")
        if stats.get("no_data", True):
            parts.append("    <p>No historical data.</p>")
        else:
            health = stats["health_percentage_statistics"]
            checks = stats["health_check_statistics"]
            parts += [
                "    <table>",
                f"        <tr><th>Data points</th><td>{stats['data_points_analyzed']}</td></tr>",
                f"        <tr><th>Time range (s)</th><td>{_fmt(stats['time_range_seconds'])}</td></tr>",
                f"        <tr><th>Average health (%)</th><td>{_fmt(health['average'])}</td></tr>",
                f"        <tr><th>Max health (%)</th><td>{_fmt(health['max'])}</td></tr>",
                f"        <tr><th>Min health (%)</th><td>{_fmt(health['min'])}</td></tr>",
                f"        <tr><th>Total checks</th><td>{checks['total_health_checks']}</td></tr>",
                f"        <tr><th>Successful checks</th><td>{checks['successful_health_checks']}</td></tr>",
                f"        <tr><th>Success rate (%)</th>"
                f"<td>{_fmt(checks['health_success_rate_percentage'])}</td></tr>",
            ]
            memory = stats.get("memory_usage_statistics")
            if memory:
                parts.append(
                    f"        <tr><th>Memory usage avg/max/min (%)</th>"
                    f"<td>{_fmt(memory['average'], 2)} / {_fmt(memory['max'], 2)} / "
                    f"{_fmt(memory['min'], 2)}</td></tr>"
                )
            parts.append("    </table>")

        parts += [
            "    <h2>Monitoring Configuration</h2>",
            f"    <p>Interval: {_fmt(report.get('monitoring_interval_seconds'))} s</p>",
            "    <ul>",
        ]
        for target in report.get("targets", []):
            parts.append(
                f"        <li>{esc(target['name'])} ({esc(target['kind'])}) - {esc(target['address'])}</li>"
            )
        parts += ["    </ul>", "</body>", "</html>", ""]

        return "\n".join(parts)

    def render(self, report: Dict[str, Any], fmt: str) -> str:
        fmt = fmt.lower()
        if fmt == "json":
            return self.render_json(report)
        if fmt == "html":
            return self.render_html(report)
        if fmt == "csv":
            return self.render_csv(report)
        raise ValueError(f"Unsupported report format: {fmt}")

    def write_report(self, report: Dict[str, Any], fmt: str, filename: Optional[str] = None) -> Path:
        """
        Render a report and write it under the output directory.

        Args:
            report: Report data from build_report
            fmt: One of json, html, csv
            filename: File name (defaults to a timestamped name)

        Returns:
            Path: Written file
        """
        content = self.render(report, fmt)

        if filename is None:
            stamp = int(report.get("report_generated_at", time.time()) * 1000)
            filename = f"health-monitor-report-{stamp}.{fmt.lower()}"

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        path.write_text(content, encoding="utf-8")

        self.logger.info(f"Report written: {path}")
        return path

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    @staticmethod
    def parse_json_report(text: str) -> Dict[str, Any]:
        """Parse a JSON report, rebuilding samples and the latest summary."""
        data = json.loads(text)
        samples = [Sample.from_dict(s) for s in data.get("historical_data", [])]
        current = data.get("current_sample")
        return {
            "samples": samples,
            "latest_summary": BatchSummary.from_dict(current["summary"]) if current else None,
            "summary_statistics": data.get("summary_statistics", {}),
            "report_generated_at": data.get("report_generated_at"),
        }

    @staticmethod
    def parse_csv(text: str) -> List[Dict[str, Any]]:
        """Parse a CSV export back into typed rows of counts and timestamps."""
        rows = []
        for row in csv.DictReader(io.StringIO(text)):
            rows.append({
                "cycle": int(row["cycle"]),
                "timestamp": float(row["timestamp"]),
                "total_targets": int(row["total_targets"]),
                "healthy_targets": int(row["healthy_targets"]),
                "failing_targets": [n for n in row["failing_targets"].split(";") if n],
                "health_percentage": float(row["health_percentage"]),
                "overall_status": row["overall_status"],
            })
        return rows
