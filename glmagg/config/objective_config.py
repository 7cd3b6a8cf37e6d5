# glmagg/config/objective_config.py
from typing import Optional

from pydantic import BaseModel, Field

from glmagg.normalization.context import NormalizationType


class ObjectiveConfig(BaseModel):
    loss: str = "logistic"
    normalization: NormalizationType = NormalizationType.NONE
    intercept_id: Optional[int] = Field(default=None, ge=0)
    l2_weight: float = Field(default=0.0, ge=0.0)
