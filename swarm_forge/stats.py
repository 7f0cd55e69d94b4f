"""
Gateway call statistics tracking.
"""

from dataclasses import dataclass, field
from typing import Dict


@dataclass
class GatewayStats:
    total_calls: int = 0
    calls_by_modality: Dict[str, int] = field(default_factory=dict)
    retries: int = 0
    timeouts: int = 0
    quota_exhausted: int = 0

    def record_call(self, modality: str = "unknown"):
        self.total_calls += 1
        self.calls_by_modality[modality] = self.calls_by_modality.get(modality, 0) + 1

    def reset(self):
        self.total_calls = 0
        self.calls_by_modality.clear()
        self.retries = 0
        self.timeouts = 0
        self.quota_exhausted = 0

    def as_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "Gateway calls": self.total_calls,
            "Retries": self.retries,
            "Timeouts": self.timeouts,
            "Quota exhausted": self.quota_exhausted,
        }
        if self.calls_by_modality:
            data["By modality"] = ", ".join(f"{k}: {v}" for k, v in self.calls_by_modality.items())
        return data


_global_stats = GatewayStats()


def get_stats() -> GatewayStats:
    return _global_stats


def record_call(modality: str = "unknown"):
    _global_stats.record_call(modality)


def record_retry():
    _global_stats.retries += 1


def record_timeout():
    _global_stats.timeouts += 1


def record_quota_exhausted():
    _global_stats.quota_exhausted += 1


def reset_stats():
    _global_stats.reset()
