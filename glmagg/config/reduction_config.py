# glmagg/config/reduction_config.py
from typing import Optional

from pydantic import BaseModel, Field


class ReductionConfig(BaseModel):
    """
    Driver-side settings: how shards are folded and merged.
    """

    num_shards: int = Field(default=4, ge=1)
    max_workers: Optional[int] = Field(default=1, ge=1)
    tree_depth: int = Field(default=2, ge=1)
    retry_attempts: int = Field(default=1, ge=1)
    retry_delay: float = Field(default=0.5, ge=0.0)
