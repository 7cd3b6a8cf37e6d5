# glmagg/config/app_config.py
import os

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .log_config import LogConfig
from .objective_config import ObjectiveConfig
from .reduction_config import ReductionConfig


def package_root() -> str:
    """
    glmagg/config/app_config.py → glmagg/config → glmagg
    """
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


class AppConfig(BaseModel):
    log: LogConfig = Field(default_factory=LogConfig)
    objective: ObjectiveConfig = Field(default_factory=ObjectiveConfig)
    reduction: ReductionConfig = Field(default_factory=ReductionConfig)

    @classmethod
    def load(cls, path: str | None = None) -> "AppConfig":
        """
        加载 YAML 配置 + .env
        - 默认使用 glmagg/config/base.yml
        - GLMAGG_LOG_LEVEL 覆盖 log.level
        """
        load_dotenv()

        if path is None:
            path = os.path.join(package_root(), "config", "base.yml")

        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

        level = os.getenv("GLMAGG_LOG_LEVEL")
        if level:
            raw.setdefault("log", {})["level"] = level

        return cls(**raw)
