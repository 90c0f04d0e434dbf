import decimal

import pytest
from lazex.lazex_config import EngineConfig, load_config


def test_defaults():
    config = EngineConfig()
    assert config.precision == 34
    assert config.rounding == "ROUND_HALF_EVEN"
    assert config.legacy_inequality is False


def test_decimal_context():
    ctx = EngineConfig(precision=7, rounding="ROUND_UP").decimal_context()
    assert ctx.prec == 7
    assert ctx.rounding == decimal.ROUND_UP
    assert ctx.traps[decimal.DivisionByZero]
    assert ctx.traps[decimal.InvalidOperation]


def test_debug_defaults_from_environment(monkeypatch):
    monkeypatch.setenv("LAZEX_DEBUG", "1")
    assert EngineConfig().debug is True
    monkeypatch.delenv("LAZEX_DEBUG")
    assert EngineConfig().debug is False


@pytest.mark.parametrize("kwargs", [
    {"precision": 0},
    {"precision": "high"},
    {"rounding": "ROUND_SIDEWAYS"},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)


def test_from_mapping():
    config = EngineConfig.from_mapping({"precision": 10, "legacy_inequality": True})
    assert config.precision == 10
    assert config.legacy_inequality is True
    assert EngineConfig.from_mapping(None) == EngineConfig()


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(ValueError, match="Unknown configuration keys: colour"):
        EngineConfig.from_mapping({"colour": "red"})


def test_load_config(tmp_path):
    path = tmp_path / "lazex.yaml"
    path.write_text("precision: 12\nrounding: ROUND_FLOOR\ndebug: false\n", encoding="utf-8")
    config = load_config(path)
    assert config == EngineConfig(precision=12, rounding="ROUND_FLOOR", debug=False)


def test_load_empty_config(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)).precision == 34


def test_load_config_requires_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n", encoding="utf-8")
    with pytest.raises(ValueError, match="must be a mapping"):
        load_config(path)
