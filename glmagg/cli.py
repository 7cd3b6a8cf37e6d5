# glmagg/cli.py
import json
from pathlib import Path
from typing import Optional

import numpy as np
import typer
from pydantic import ValidationError
from rich import print
from rich.markup import escape

from glmagg import __version__
from glmagg.config import AppConfig
from glmagg.config.reduction_config import ReductionConfig
from glmagg.data.dataset import load_labeled_points, split_shards
from glmagg.function.loss import resolve_loss_function
from glmagg.function.objective import GLMObjective
from glmagg.normalization.context import FeatureSummary, NormalizationContext, NormalizationType
from glmagg.observability.instrumentation import Instrumentation
from glmagg.utils.errors import AggregationError
from glmagg.utils.logger import init_logging

app = typer.Typer(help="GLM loss aggregation CLI")


def load_vector(path: Path) -> np.ndarray:
    """
    .npy 或 JSON 数组
    """
    if not path.exists():
        raise FileNotFoundError(f"Vector file not found: {path}")
    if path.suffix == ".npy":
        return np.load(path).astype(np.float64)
    return np.asarray(json.loads(path.read_text(encoding="utf-8")), dtype=np.float64)


def _format(vector: np.ndarray) -> str:
    return "[" + ", ".join(f"{x:.6g}" for x in vector) + "]"


@app.command()
def version():
    print(__version__)


@app.command()
def evaluate(
        data: Path = typer.Argument(..., help="parquet dataset"),
        coef: Path = typer.Argument(..., help="coefficients (.npy or JSON list)"),
        features: str = typer.Option(..., help="comma-separated feature columns"),
        label: str = typer.Option("label", help="label column"),
        weight: Optional[str] = typer.Option(None, help="weight column"),
        offset: Optional[str] = typer.Option(None, help="offset column"),
        loss: Optional[str] = typer.Option(None, help="loss function name"),
        normalization: Optional[NormalizationType] = typer.Option(None, case_sensitive=False),
        intercept_id: Optional[int] = typer.Option(None, help="index of the intercept feature"),
        l2_weight: Optional[float] = typer.Option(None, help="L2 regularization weight"),
        shards: Optional[int] = typer.Option(None, help="number of shards"),
        workers: Optional[int] = typer.Option(None, help="max worker processes"),
        vector: Optional[Path] = typer.Option(None, help="multiply vector: print a Hessian-vector product"),
        sparse: bool = typer.Option(False, help="keep features as sparse rows"),
        config: Optional[Path] = typer.Option(None, help="YAML config file"),
):
    """
    计算目标函数值与梯度（或 Hessian-vector product）
    """
    try:
        cfg = AppConfig.load(str(config) if config else None)
        init_logging(cfg.log)

        obj_cfg = cfg.objective
        overrides = {"num_shards": shards, "max_workers": workers}
        red_cfg = ReductionConfig.model_validate(
            {**cfg.reduction.model_dump(), **{k: v for k, v in overrides.items() if v is not None}}
        )

        points = load_labeled_points(
            data,
            feature_columns=[c.strip() for c in features.split(",") if c.strip()],
            label_column=label,
            weight_column=weight,
            offset_column=offset,
            sparse=sparse,
        )

        kind = normalization if normalization is not None else obj_cfg.normalization
        intercept = intercept_id if intercept_id is not None else obj_cfg.intercept_id
        summary = None if kind == NormalizationType.NONE or not points else FeatureSummary.from_points(points)
        norm = NormalizationContext.build(kind, summary, intercept)

        inst = Instrumentation(enabled=True)
        objective = GLMObjective(
            split_shards(points, red_cfg.num_shards),
            resolve_loss_function(loss or obj_cfg.loss),
            norm,
            l2_weight=l2_weight if l2_weight is not None else obj_cfg.l2_weight,
            reduction=red_cfg,
            inst=inst,
        )

        w = load_vector(coef)
        if vector is not None:
            hv = objective.hessian_vector(w, load_vector(vector))
            print(f"count={len(points)}")
            print(f"hessian_vector={_format(hv)}")
        else:
            value, gradient = objective.value_and_gradient(w)
            print(f"count={len(points)}")
            print(f"value={value:.6g}")
            print(f"gradient={_format(gradient)}")

        inst.report("evaluate")

    except (AggregationError, FileNotFoundError, ValidationError) as e:
        # 输入/配置错误：不打印 traceback
        print(f"[red]{type(e).__name__}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

# python -m glmagg.cli evaluate data.parquet coef.json --features f0,f1 --loss logistic
