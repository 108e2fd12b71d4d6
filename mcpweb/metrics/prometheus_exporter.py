from typing import Optional

from .manager_metrics import ManagerMetrics


def _counter(name: str, help_text: str, value) -> list[str]:
    return [
        f"# HELP {name} {help_text}",
        f"# TYPE {name} counter",
        f"{name} {value}",
        "",
    ]


def export_metrics_to_prometheus(
    metrics: ManagerMetrics,
    active_sessions: Optional[int] = None,
    subscribers: Optional[int] = None,
) -> str:
    lines = [
        *_counter("mcpweb_sessions_started_total", "Sessions whose server process was spawned", metrics.sessions_started),
        *_counter("mcpweb_sessions_failed_total", "Sessions that ended in the failed state", metrics.sessions_failed),
        *_counter("mcpweb_frames_received_total", "Frames read from server stdout", metrics.frames_received),
        *_counter("mcpweb_frames_malformed_total", "Frames that could not be decoded", metrics.frames_malformed),
        *_counter("mcpweb_broadcasts_total", "Envelopes published to subscribers", metrics.broadcasts_total),
        *_counter("mcpweb_errors_total", "Errors returned by the HTTP API", metrics.errors_total),
        "# HELP mcpweb_uptime_seconds Server uptime in seconds",
        "# TYPE mcpweb_uptime_seconds gauge",
        f"mcpweb_uptime_seconds {metrics.uptime_seconds:.0f}",
    ]

    if active_sessions is not None:
        lines.extend([
            "",
            "# HELP mcpweb_active_sessions Sessions currently registered",
            "# TYPE mcpweb_active_sessions gauge",
            f"mcpweb_active_sessions {active_sessions}",
        ])

    if subscribers is not None:
        lines.extend([
            "",
            "# HELP mcpweb_subscribers Connected WebSocket subscribers",
            "# TYPE mcpweb_subscribers gauge",
            f"mcpweb_subscribers {subscribers}",
        ])

    if metrics.commands_by_method:
        lines.extend([
            "",
            "# HELP mcpweb_commands_total Requests written to servers by method",
            "# TYPE mcpweb_commands_total counter",
        ])
        for method, count in metrics.commands_by_method.items():
            lines.append(f'mcpweb_commands_total{{method="{method}"}} {count}')

    return "\n".join(lines)
