"""
Engine configuration.

Settings live in a JSON file written with ``--save-config`` and read back
with ``--config``; the video search API key falls back to the
``YOUTUBE_API_KEY`` environment variable.
"""

import json
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

API_KEY_ENV = "YOUTUBE_API_KEY"


class EngineConfig(BaseModel):
    """Tunable engine settings."""

    db_path: str = "./data/learnpath.db"
    milestones: List[int] = Field(default_factory=lambda: [25, 50, 75, 100])
    level_bonus: float = 2.0
    topic_weight: float = 0.5
    prerequisite_weight: float = 1.0
    rate_limit_delay: float = 0.1
    max_results: int = 20
    create_missing_paths: bool = True
    api_key: Optional[str] = None

    def resolved_api_key(self) -> Optional[str]:
        return self.api_key or os.environ.get(API_KEY_ENV) or None


def load_config(path: Optional[str] = None) -> EngineConfig:
    """Load settings from *path*, or defaults when *path* is ``None``."""
    if path is None:
        return EngineConfig()
    with open(path, "r", encoding="utf-8") as fh:
        config = EngineConfig.model_validate(json.load(fh))
    logger.info("Config loaded from %s", path)
    return config


def save_config(config: EngineConfig, path: str) -> None:
    """Write *config* to *path* as JSON. The API key is never written."""
    os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(config.model_dump_json(indent=2, exclude={"api_key"}))
    logger.info("Config saved to %s", path)
