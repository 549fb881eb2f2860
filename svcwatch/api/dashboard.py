"""HTML dashboard rendering."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from html import escape

from svcwatch.health.engine import CheckResult
from svcwatch.services.registry import DashboardConfig, ServiceSpec

_PAGE_HEAD = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; line-height: 1.6; }}
    h1 {{ color: #333; }}
    .services {{ margin-top: 20px; }}
    .service {{ border: 1px solid #ddd; padding: 10px; margin-bottom: 10px; border-radius: 4px; }}
    .service h3 {{ margin-top: 0; }}
    .up {{ background-color: #d4edda; border-color: #c3e6cb; }}
    .down {{ background-color: #f8d7da; border-color: #f5c6cb; }}
    .unknown {{ background-color: #fff3cd; border-color: #ffeeba; }}
    .status-indicator {{ display: inline-block; padding: 3px 8px; border-radius: 3px; margin-left: 10px; }}
    .status-up {{ background-color: #28a745; color: white; }}
    .status-down {{ background-color: #dc3545; color: white; }}
    .status-unknown {{ background-color: #ffc107; color: black; }}
  </style>
  <script>
    setTimeout(function() {{ window.location.reload(); }}, {refresh_ms});
  </script>
</head>
<body>
  <h1>{title}</h1>
  <p>Monitoring {count} services. Dashboard refreshes every {refresh:g} seconds.</p>
  <p><a href="/health">View health API response</a> | <a href="/api/services">JSON API</a></p>
  <div class="services">
    <h2>Service Status</h2>
"""

_SERVICE_CARD = """    <div class="service {status}">
      <h3>{name} <span class="status-indicator status-{status}">{status}</span></h3>
      <p>URL: {url}</p>
      <p>Last Checked: {last_checked}</p>
      <p>Response Time: {response_time} ms</p>
      <p>Status Code: {status_code}</p>
      <p>Message: {message}</p>
    </div>
"""

_PAGE_TAIL = """  </div>
</body>
</html>
"""


def render_dashboard(
    dashboard: DashboardConfig,
    services: Sequence[ServiceSpec],
    results: Mapping[str, CheckResult],
) -> str:
    """Render one card per configured service, in configuration order."""
    parts = [
        _PAGE_HEAD.format(
            title=escape(dashboard.title),
            refresh_ms=int(dashboard.refresh_interval * 1000),
            refresh=dashboard.refresh_interval,
            count=len(services),
        )
    ]

    for svc in services:
        result = results.get(svc.name)
        if result is not None:
            card = {
                "status": result.status.value,
                "last_checked": result.last_checked.isoformat(timespec="seconds"),
                "response_time": result.response_time_ms,
                "status_code": result.status_code,
                "message": result.message,
            }
        else:
            card = {
                "status": "unknown",
                "last_checked": "Never",
                "response_time": 0,
                "status_code": 0,
                "message": "Not checked yet",
            }
        parts.append(
            _SERVICE_CARD.format(
                name=escape(svc.name),
                url=escape(svc.url),
                status=card["status"],
                last_checked=escape(card["last_checked"]),
                response_time=card["response_time"],
                status_code=card["status_code"],
                message=escape(card["message"]),
            )
        )

    parts.append(_PAGE_TAIL)
    return "".join(parts)
