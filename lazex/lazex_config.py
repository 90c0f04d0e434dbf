"""
Engine configuration.

Settings can be built in code, from a plain mapping, or from a YAML file:

    precision: 34
    rounding: ROUND_HALF_EVEN
    legacy_inequality: false
    debug: false
"""
import decimal
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

_ROUNDING_MODES = {
    name: getattr(decimal, name)
    for name in dir(decimal)
    if name.startswith("ROUND_")
}


def _debug_from_env() -> bool:
    return bool(os.environ.get("LAZEX_DEBUG"))


@dataclass
class EngineConfig:
    """Numeric context and behaviour switches shared by an expression's operators."""
    precision: int = 34
    rounding: str = "ROUND_HALF_EVEN"
    # When set, '!=' evaluates the same comparison as '==' (the historical behaviour).
    legacy_inequality: bool = False
    debug: bool = field(default_factory=_debug_from_env)

    def __post_init__(self):
        if not isinstance(self.precision, int) or self.precision < 1:
            raise ValueError(f"precision must be a positive integer, not {self.precision!r}")
        if self.rounding not in _ROUNDING_MODES:
            raise ValueError(f"Unknown rounding mode {self.rounding!r}")

    def decimal_context(self) -> decimal.Context:
        return decimal.Context(
            prec=self.precision,
            rounding=_ROUNDING_MODES[self.rounding],
            traps=[decimal.InvalidOperation, decimal.DivisionByZero, decimal.Overflow],
        )

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "EngineConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path) -> EngineConfig:
    """Reads an EngineConfig from a YAML document. An empty file yields the defaults."""
    p = Path(path)
    with p.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, dict):
        raise ValueError(f"{p}: configuration must be a mapping")
    return EngineConfig.from_mapping(data)
