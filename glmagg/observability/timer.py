# glmagg/observability/timer.py
import time
from collections import defaultdict
from typing import Dict


class Timer:
    """
    Named wall-clock timer.

    - start(name) / end(name) → 本次耗时（秒）
    - totals[name] 累计同名区间的总耗时（多轮 reduce 反复计时同一阶段）
    - 未 start 的 name 调用 end 返回 0.0
    """

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self._start: Dict[str, float] = {}
        self.totals: Dict[str, float] = defaultdict(float)
        self.counts: Dict[str, int] = defaultdict(int)

    def start(self, name: str) -> None:
        if self.enabled:
            self._start[name] = time.perf_counter()

    def end(self, name: str) -> float:
        if not self.enabled or name not in self._start:
            return 0.0

        elapsed = time.perf_counter() - self._start.pop(name)
        self.totals[name] += elapsed
        self.counts[name] += 1
        return elapsed
