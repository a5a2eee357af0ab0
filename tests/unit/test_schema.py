import pytest

from nsw_sales.common.errors import ConfigError
from nsw_sales.common.schema import validate_pipeline_config


def _minimal() -> dict:
    return {"source": {"directory": "./in"}, "output": {"directory": "./out"}}


def test_minimal_config_is_accepted():
    assert validate_pipeline_config(_minimal()) == _minimal()


def test_missing_output_section_rejected():
    with pytest.raises(ConfigError):
        validate_pipeline_config({"source": {"directory": "./in"}})


def test_unknown_keys_rejected_unless_allowed():
    cfg = _minimal()
    cfg["output"]["compress"] = True

    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)
    assert validate_pipeline_config(cfg, allow_unknown=True) is cfg


@pytest.mark.parametrize("value", [0, -5, "5000", True, 2.5])
def test_records_per_chunk_must_be_positive_int(value):
    cfg = _minimal()
    cfg["output"]["records_per_chunk"] = value

    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)


def test_cache_ttl_keys_are_checked():
    cfg = _minimal()
    cfg["query"] = {"cache_ttl_seconds": {"artifacts": 10}}
    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)

    cfg["query"] = {"cache_ttl_seconds": {"artifact": 0}}
    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)
