# glmagg/reduction/executor.py
from __future__ import annotations

import os
from concurrent.futures import ProcessPoolExecutor
from typing import Any, Callable, Iterable, TypeVar

from glmagg.utils.logger import logs

T = TypeVar("T")


class ParallelExecutor:
    """
    ProcessPoolExecutor 的统一封装

    - 1 个 worker → 直接串行（无进程开销）
    - 结果顺序与 items 顺序一致
    - 任一 item 失败 → 取消剩余任务并向上抛出
    """

    @staticmethod
    def run(
            *,
            items: Iterable[T],
            handler: Callable[[T], Any],
            max_workers: int | None = None,
    ) -> list[Any]:
        items = list(items)
        if not items:
            logs.info("[ParallelExecutor] no items to process")
            return []

        workers = ParallelExecutor._resolve_workers(items, max_workers)
        logs.info(
            f"[ParallelExecutor] start total={len(items)} workers={workers}"
        )

        if workers == 1:
            return ParallelExecutor._run_sequential(items, handler)
        return ParallelExecutor._run_parallel(items, handler, workers)

    # ---------------- internal ----------------

    @staticmethod
    def _resolve_workers(items: list, max_workers: int | None) -> int:
        cpu = os.cpu_count() or 1
        if max_workers is None:
            return min(cpu, len(items))
        return max(1, min(max_workers, len(items)))

    @staticmethod
    def _run_sequential(items: list, handler: Callable[[Any], Any]) -> list[Any]:
        return [handler(item) for item in items]

    @staticmethod
    def _run_parallel(
            items: list,
            handler: Callable[[Any], Any],
            workers: int,
    ) -> list[Any]:
        with ProcessPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(handler, item) for item in items]
            try:
                return [fut.result() for fut in futures]
            except Exception:
                for fut in futures:
                    fut.cancel()
                raise
