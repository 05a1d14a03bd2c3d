"""Traffic figures from a tenant's access log (combined log format)."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

import structlog


log = structlog.get_logger()

# 203.0.113.9 - - [10/Oct/2025:13:55:36 +0000] "GET / HTTP/1.1" 200 2326 "-" "curl/8"
LINE_PATTERN = re.compile(
    r'^(?P<ip>\S+) \S+ \S+ \[(?P<time>[^\]]+)\] "[^"]*" (?P<status>\d{3}) (?P<size>\d+|-)'
)
TIME_FORMAT = "%d/%b/%Y:%H:%M:%S %z"
BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class AccessLogSummary:
    page_views: int = 0
    unique_visitors: int = 0
    bandwidth_mb: float = 0.0


def summarize_access_log(path: Path, now: datetime, window: timedelta) -> AccessLogSummary:
    """Count requests, distinct client addresses and bytes sent since ``now - window``.

    Lines that do not parse are skipped. A missing log means no traffic.
    """
    path = Path(path)
    if not path.exists():
        return AccessLogSummary()

    cutoff = now - window
    views = 0
    visitors: set[str] = set()
    sent = 0
    skipped = 0
    with path.open("r", encoding="utf-8", errors="replace") as handle:
        for line in handle:
            match = LINE_PATTERN.match(line)
            if match is None:
                skipped += 1
                continue
            try:
                timestamp = datetime.strptime(match["time"], TIME_FORMAT)
            except ValueError:
                skipped += 1
                continue
            if timestamp < cutoff:
                continue
            views += 1
            visitors.add(match["ip"])
            if match["size"] != "-":
                sent += int(match["size"])

    if skipped:
        log.debug("access_log_lines_skipped", path=str(path), count=skipped)
    return AccessLogSummary(
        page_views=views,
        unique_visitors=len(visitors),
        bandwidth_mb=round(sent / BYTES_PER_MB, 2),
    )
