"""In-memory API request statistics, grouped by route group."""

from dataclasses import dataclass


@dataclass
class GroupStats:
    requests: int = 0
    errors: int = 0
    total_duration_ms: float = 0.0

    @property
    def average_duration_ms(self) -> float:
        if not self.requests:
            return 0.0
        return self.total_duration_ms / self.requests


class RequestStats:
    OTHER = "other"

    def __init__(self):
        self._groups: dict[str, GroupStats] = {}
        self._methods: dict[str, int] = {}

    def record(self, group: str, method: str, status_code: int, duration_ms: float) -> None:
        stats = self._groups.setdefault(group or self.OTHER, GroupStats())
        stats.requests += 1
        stats.total_duration_ms += duration_ms
        if status_code >= 400:
            stats.errors += 1
        self._methods[method] = self._methods.get(method, 0) + 1

    @property
    def total_requests(self) -> int:
        return sum(s.requests for s in self._groups.values())

    def snapshot(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "methods": dict(self._methods),
            "groups": {
                name: {
                    "requests": s.requests,
                    "errors": s.errors,
                    "average_duration_ms": round(s.average_duration_ms, 3),
                }
                for name, s in sorted(self._groups.items())
            },
        }
