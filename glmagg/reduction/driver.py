# glmagg/reduction/driver.py
from __future__ import annotations

import math
from dataclasses import dataclass
from functools import partial, reduce
from typing import Callable, Iterable, List, Optional, Sequence, Union

import numpy as np

from glmagg.data.labeled_point import LabeledPoint
from glmagg.function.aggregator import Aggregator, AggregatorKind
from glmagg.function.loss import PointwiseLossFunction
from glmagg.normalization.context import NormalizationContext
from glmagg.observability.instrumentation import Instrumentation, NoOpInstrumentation
from glmagg.reduction.executor import ParallelExecutor
from glmagg.utils.errors import ConfigurationError
from glmagg.utils.logger import logs
from glmagg.utils.retry import Retry

# 一个 shard：已物化的点序列，或按需读取的 loader（可重放）
Shard = Union[Sequence[LabeledPoint], Callable[[], Iterable[LabeledPoint]]]


@dataclass(frozen=True, eq=False)
class Broadcast:
    """
    Read-only inputs shared by every shard of one round.

    Each shard task builds its own Aggregator from these references;
    nothing here is mutated after construction.
    """

    coef: np.ndarray
    loss: PointwiseLossFunction
    normalization: Optional[NormalizationContext] = None
    kind: AggregatorKind = AggregatorKind.GRADIENT
    multiply_vector: Optional[np.ndarray] = None

    def __post_init__(self):
        # validate once on the driver, before any shard is scheduled
        self.create()

    def create(self) -> Aggregator:
        return Aggregator(
            self.coef,
            self.loss,
            self.normalization,
            kind=self.kind,
            multiply_vector=self.multiply_vector,
        )


@logs.catch(msg="shard fold failed", log_time=False)
def fold_shard(shard: Shard, broadcast: Broadcast) -> Aggregator:
    points = shard() if callable(shard) else shard
    return broadcast.create().add_all(points)


def _fold_task(
        shard: Shard,
        *,
        broadcast: Broadcast,
        retry_attempts: int,
        retry_delay: float,
) -> Aggregator:
    # fold 是输入的纯函数，可整体重跑；只重试 I/O 类瞬时错误
    return Retry.run(
        fold_shard,
        shard,
        broadcast,
        exceptions=(OSError,),
        max_attempts=retry_attempts,
        delay=retry_delay,
    )


def tree_merge(aggregators: Sequence[Aggregator], depth: int = 2) -> Aggregator:
    """
    Multi-level pairwise combine, same grouping as a depth-limited tree aggregate:
    each level folds partials into ~len/scale groups until few enough remain.
    """
    if depth < 1:
        raise ConfigurationError(f"depth must be >= 1, got {depth}")

    partials = list(aggregators)
    if not partials:
        raise ConfigurationError("Nothing to merge")

    scale = max(int(math.ceil(len(partials) ** (1.0 / depth))), 2)
    num_partitions = len(partials)

    while num_partitions > scale + math.ceil(num_partitions / scale):
        num_partitions //= scale
        groups: List[List[Aggregator]] = [[] for _ in range(num_partitions)]
        for i, agg in enumerate(partials):
            groups[i % len(groups)].append(agg)
        partials = [reduce(lambda a, b: a.merge(b), group) for group in groups]

    return reduce(lambda a, b: a.merge(b), partials)


def reduce_shards(
        shards: Sequence[Shard],
        broadcast: Broadcast,
        *,
        max_workers: Optional[int] = 1,
        depth: int = 2,
        retry_attempts: int = 1,
        retry_delay: float = 0.5,
        inst: Optional[Instrumentation] = None,
) -> Aggregator:
    """
    One round: fold every shard independently, then tree-merge the partials.

    With no shards the result is an empty aggregator (count == 0).
    """
    inst = inst if inst is not None else NoOpInstrumentation()
    shards = list(shards)

    logs.info(
        f"[Reduce] start kind={broadcast.kind.value} shards={len(shards)} "
        f"dim={broadcast.coef.shape[0]}"
    )

    if not shards:
        logs.warning("[Reduce] no shards, returning empty aggregator")
        return broadcast.create()

    handler = partial(
        _fold_task,
        broadcast=broadcast,
        retry_attempts=retry_attempts,
        retry_delay=retry_delay,
    )

    with inst.timer("fold_shards"):
        partials = ParallelExecutor.run(
            items=shards,
            handler=handler,
            max_workers=max_workers,
        )

    with inst.timer("tree_merge"):
        result = tree_merge(partials, depth=depth)

    logs.info(f"[Reduce] done kind={broadcast.kind.value} count={result.count}")
    return result
