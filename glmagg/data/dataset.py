# glmagg/data/dataset.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
import pyarrow.parquet as pq
import scipy.sparse as sp

from glmagg.data.labeled_point import LabeledPoint
from glmagg.utils.errors import ConfigurationError
from glmagg.utils.logger import logs


def points_from_frame(
        frame: pd.DataFrame,
        *,
        feature_columns: Sequence[str],
        label_column: str,
        weight_column: Optional[str] = None,
        offset_column: Optional[str] = None,
        sparse: bool = False,
        drop_na: bool = True,
) -> List[LabeledPoint]:
    columns = list(feature_columns) + [label_column]
    for col in (weight_column, offset_column):
        if col is not None:
            columns.append(col)

    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise ConfigurationError(f"Missing columns: {missing}")

    frame = frame[columns]
    if drop_na:
        before = len(frame)
        frame = frame.dropna()
        dropped = before - len(frame)
        if dropped:
            logs.warning(f"[Dataset] dropped {dropped} rows with NA")

    X = frame[list(feature_columns)].to_numpy(dtype=np.float64)
    y = frame[label_column].to_numpy(dtype=np.float64)
    w = (
        frame[weight_column].to_numpy(dtype=np.float64)
        if weight_column is not None
        else np.ones(len(frame))
    )
    o = (
        frame[offset_column].to_numpy(dtype=np.float64)
        if offset_column is not None
        else np.zeros(len(frame))
    )

    rows = sp.csr_array(X) if sparse else X

    points = []
    for i in range(len(frame)):
        features = rows[i:i + 1] if sparse else rows[i]
        points.append(
            LabeledPoint(
                label=float(y[i]),
                features=features,
                offset=float(o[i]),
                weight=float(w[i]),
            )
        )
    return points


def load_labeled_points(
        path: str | Path,
        *,
        feature_columns: Sequence[str],
        label_column: str,
        weight_column: Optional[str] = None,
        offset_column: Optional[str] = None,
        sparse: bool = False,
) -> List[LabeledPoint]:
    """
    读取 parquet → LabeledPoint 列表（只读取需要的列）
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}")

    columns = list(feature_columns) + [label_column]
    columns += [c for c in (weight_column, offset_column) if c is not None]

    table = pq.read_table(path, columns=columns)
    logs.info(f"[Dataset] loaded {path.name} rows={table.num_rows}")

    return points_from_frame(
        table.to_pandas(),
        feature_columns=feature_columns,
        label_column=label_column,
        weight_column=weight_column,
        offset_column=offset_column,
        sparse=sparse,
    )


def split_shards(points: Sequence[LabeledPoint], num_shards: int) -> List[List[LabeledPoint]]:
    """
    Disjoint contiguous partition, shard sizes differ by at most one.
    Never produces an empty shard.
    """
    if num_shards < 1:
        raise ConfigurationError(f"num_shards must be >= 1, got {num_shards}")

    points = list(points)
    n = min(num_shards, len(points))
    if n == 0:
        return []

    base, extra = divmod(len(points), n)
    shards = []
    start = 0
    for i in range(n):
        end = start + base + (1 if i < extra else 0)
        shards.append(points[start:end])
        start = end
    return shards
