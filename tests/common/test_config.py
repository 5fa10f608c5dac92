import pytest
from pathlib import Path
from omegaconf import OmegaConf
from vqpy.common.config import ConfigManager
from vqpy.common.exceptions import ConfigurationError

PROFILE = """
source: traffic.mp4
models:
  objects_in_frame:
    type: yolo
    model_path: yolo11n.pt
pipeline:
  mode: async
"""


@pytest.fixture
def config_dir(tmp_path):
    (tmp_path / "query").mkdir()
    (tmp_path / "query" / "default.yaml").write_text(PROFILE)
    return tmp_path


def test_load_query_config_fills_defaults(config_dir):
    cfg = ConfigManager(config_dir).load_query_config()
    assert cfg.query.source == "traffic.mp4"
    assert cfg.query.pipeline.mode == "async"
    assert cfg.query.pipeline.frame_buffer_size == 10
    assert cfg.query.history.default_length == 30
    assert cfg.query.persistence.enabled is False
    assert cfg.query.models.objects_in_frame.type == "yolo"


def test_overrides_are_applied(config_dir):
    cfg = ConfigManager(config_dir).load_query_config(
        overrides=["query.source=0", "query.history.ttl_frames=10"]
    )
    assert cfg.query.source == "0"
    assert cfg.query.history.ttl_frames == 10


def test_missing_profile_raises(config_dir):
    with pytest.raises(FileNotFoundError):
        ConfigManager(config_dir).load_query_config("night")


def test_missing_required_key_raises(config_dir):
    (config_dir / "query" / "partial.yaml").write_text("source: a.mp4\n")
    with pytest.raises(ConfigurationError, match="models"):
        ConfigManager(config_dir).load_query_config("partial")


def test_validate_rejects_unknown_keys():
    cfg = OmegaConf.create({"query": {"source": "a.mp4", "models": {}, "colour": "red"}})
    with pytest.raises(ConfigurationError):
        ConfigManager.validate(cfg)


def test_validate_rejects_bad_types():
    cfg = OmegaConf.create({"query": {"source": "a.mp4", "history": {"default_length": "long"}}})
    with pytest.raises(ConfigurationError):
        ConfigManager.validate(cfg)


def test_validate_rejects_unknown_pipeline_mode():
    cfg = OmegaConf.create({"query": {"source": "a.mp4", "pipeline": {"mode": "turbo"}}})
    with pytest.raises(ConfigurationError, match="turbo"):
        ConfigManager.validate(cfg)


def test_validate_requires_query_section():
    with pytest.raises(ConfigurationError):
        ConfigManager.validate(OmegaConf.create({"vision": {}}))


def test_shipped_default_profile_is_valid():
    conf_dir = Path(__file__).resolve().parents[2] / "conf"
    cfg = ConfigManager(conf_dir).load_query_config()
    assert set(cfg.query.models) >= {"objects_in_frame", "track"}
