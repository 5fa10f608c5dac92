from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException
from pathlib import Path
from typing import List, Optional

from .models import QueryConfig
from ..exceptions import ConfigurationError

class ConfigManager:
    """Loads query runtime configuration and validates it against the schema"""

    REQUIRED_KEYS = ('source', 'models')

    def __init__(self, config_dir: Path = Path("conf")):
        self.config_dir = Path(config_dir)

    def load_query_config(self, profile: str = "default", overrides: Optional[List[str]] = None) -> DictConfig:
        """Loads conf/query/<profile>.yaml, applies dotlist overrides and returns {'query': ...}"""
        config_path = self.config_dir / "query" / f"{profile}.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config not found: {config_path}")

        raw = OmegaConf.load(config_path)
        for key in self.REQUIRED_KEYS:
            if key not in raw:
                raise ConfigurationError(f"Missing required config key: {key}")

        cfg = OmegaConf.create({"query": raw})
        if overrides:
            cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))

        return self.validate(cfg)

    @staticmethod
    def validate(cfg: DictConfig) -> DictConfig:
        """Merges cfg.query over the structured schema so types and unknown keys are checked"""
        if 'query' not in cfg:
            raise ConfigurationError("Configuration must have a top-level 'query' section")
        try:
            schema = OmegaConf.structured(QueryConfig)
            merged = OmegaConf.merge(schema, cfg.query)
        except OmegaConfBaseException as e:
            raise ConfigurationError(f"Invalid query configuration: {e}") from e

        if merged.pipeline.mode not in ("sync", "async"):
            raise ConfigurationError(f"Unknown pipeline mode: {merged.pipeline.mode}")
        if merged.history.default_length < 1:
            raise ConfigurationError("history.default_length must be >= 1")

        return OmegaConf.create({"query": merged})
