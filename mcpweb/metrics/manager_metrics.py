from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass
class ManagerMetrics:
    sessions_started: int = 0
    sessions_failed: int = 0
    frames_received: int = 0
    frames_malformed: int = 0
    commands_total: int = 0
    commands_by_method: dict[str, int] = field(
        default_factory=dict
    )
    broadcasts_total: int = 0
    errors_total: int = 0
    start_time: datetime = field(
        default_factory=lambda: datetime.now(
            timezone.utc
        )
    )

    def record_session_started(self) -> None:
        self.sessions_started += 1

    def record_session_failed(self) -> None:
        self.sessions_failed += 1

    def record_frame(self, malformed: bool = False) -> None:
        self.frames_received += 1
        if malformed:
            self.frames_malformed += 1

    def record_command(self, method: str) -> None:
        self.commands_total += 1
        self.commands_by_method[method] = (
            self.commands_by_method.get(method, 0) + 1
        )

    def record_broadcast(self) -> None:
        self.broadcasts_total += 1

    def record_error(self) -> None:
        self.errors_total += 1

    @property
    def uptime_seconds(self) -> float:
        return (
            datetime.now(timezone.utc)
            - self.start_time
        ).total_seconds()
