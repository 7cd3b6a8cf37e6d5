# glmagg/observability/instrumentation.py
from __future__ import annotations

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict

from glmagg.observability.timer import Timer
from glmagg.utils.logger import logs


@dataclass
class Instrumentation:
    """
    Leaf-only timing for the reduction driver.

    - timer(record=True) 写入 timeline
    - timer(record=False) 仅定义 wall-time 边界，无副作用
    - 不在热路径（Aggregator.add）打点
    """

    enabled: bool = True

    def __post_init__(self):
        self._timer = Timer(enabled=self.enabled)
        self.timeline: Dict[str, float] = OrderedDict()

    def timer(self, name: str, *, record: bool = True):
        inst = self

        @contextmanager
        def _ctx():
            if not inst.enabled:
                yield
                return

            inst._timer.start(name)
            try:
                yield
            finally:
                elapsed = inst._timer.end(name)
                if record:
                    inst.timeline[name] = elapsed

        return _ctx()

    def totals(self) -> Dict[str, float]:
        """Cumulative seconds per timer name across every call."""
        return dict(self._timer.totals)

    def report(self, title: str) -> float:
        logs.info(f"[Timeline] ===== {title} =====")

        total = 0.0
        for name, sec in self.timeline.items():
            logs.info(f"[Timeline] {str(name):<30} {sec:>8.3f}s")
            total += sec

        logs.info(f"[Timeline] Total{'':<27} {total:>8.3f}s")
        return total


class NoOpInstrumentation:
    """Instrumentation disabled 时使用。"""

    def __init__(self):
        self.timeline: Dict[str, float] = {}

    def timer(self, name: str, *, record: bool = True):
        return _NoOpTimer()

    def totals(self) -> Dict[str, float]:
        return {}

    def report(self, title: str) -> float:
        return 0.0


class _NoOpTimer:
    def __enter__(self):
        pass

    def __exit__(self, exc_type, exc, tb):
        pass
