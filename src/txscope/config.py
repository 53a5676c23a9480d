"""
Configuration for txscope analysis.

Policy constants (hint thresholds, the synthetic gas split) and trace
resource limits live here so they can be tuned from a YAML file or in
tests without touching the analysis code.
"""

import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from txscope.utils.exceptions import ConfigError
from txscope.utils.logging import get_logger

logger = get_logger('config')

DEFAULT_CONFIG_FILE = "txscope.config.yaml"


@dataclass(frozen=True)
class AnalysisPolicy:
    """Thresholds and percentages used by the gas profiler."""
    efficiency_hint_threshold: float = 80
    call_count_hint_threshold: int = 5
    gas_hint_threshold: int = 100000
    savings_per_call: int = 1000
    gas_savings_divisor: int = 10
    # storage, external calls, memory, computation (percent); remainder is "other"
    breakdown_split: Tuple[int, int, int, int] = (30, 35, 15, 20)

    def __post_init__(self):
        split = tuple(self.breakdown_split)
        if len(split) != 4 or any(p < 0 for p in split) or sum(split) > 100:
            raise ConfigError(
                f"breakdown_split must be four non-negative percentages summing to at most 100, got {list(split)}"
            )
        if self.gas_savings_divisor <= 0:
            raise ConfigError("gas_savings_divisor must be positive")
        object.__setattr__(self, 'breakdown_split', split)


@dataclass(frozen=True)
class TraceLimits:
    """Resource guard for untrusted traces."""
    max_depth: int = 1000
    max_nodes: int = 100000

    def __post_init__(self):
        if self.max_depth < 0 or self.max_nodes < 1:
            raise ConfigError(
                f"Invalid trace limits: max_depth={self.max_depth}, max_nodes={self.max_nodes}"
            )


@dataclass(frozen=True)
class AnalyzerConfig:
    """Top-level analyzer configuration."""
    policy: AnalysisPolicy = field(default_factory=AnalysisPolicy)
    limits: TraceLimits = field(default_factory=TraceLimits)
    rules: Tuple[str, ...] = ("REENTRANCY",)
    function_hints: bool = True
    strict_call_types: bool = False

    def __post_init__(self):
        rules = self.rules
        if isinstance(rules, str):
            rules = [rules]
        if not isinstance(rules, (list, tuple)):
            raise ConfigError(f"rules must be a list of rule ids, got {rules!r}")
        rules = tuple(str(r).upper() for r in rules)

        from txscope.core.vulnerability_scanner import RULES
        for rule_id in rules:
            if rule_id not in RULES:
                raise ConfigError(
                    f"Unknown vulnerability rule '{rule_id}'. Available: {', '.join(RULES)}"
                )
        object.__setattr__(self, 'rules', rules)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['policy']['breakdown_split'] = list(self.policy.breakdown_split)
        data['rules'] = list(self.rules)
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AnalyzerConfig":
        """Build a config from a (possibly partial) dictionary."""
        data = dict(data or {})
        known = {'policy', 'limits', 'rules', 'function_hints', 'strict_call_types'}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        try:
            policy = AnalysisPolicy(**(data.get('policy') or {}))
            limits = TraceLimits(**(data.get('limits') or {}))
        except TypeError as e:
            raise ConfigError(f"Invalid configuration: {e}")

        return cls(
            policy=policy,
            limits=limits,
            rules=cls.rules if data.get('rules') is None else data['rules'],
            function_hints=bool(data.get('function_hints', True)),
            strict_call_types=bool(data.get('strict_call_types', False)),
        )


def load_config(path: Optional[str] = None) -> AnalyzerConfig:
    """
    Load analyzer configuration from a YAML file.

    Args:
        path: Path to the YAML file. If None, txscope.config.yaml in the
              current directory is used when it exists.

    Returns:
        AnalyzerConfig (defaults when no file is found and no path was given)

    Raises:
        ConfigError: If an explicit path is missing or the file is invalid
    """
    if path is None:
        default_path = Path(os.getcwd()) / DEFAULT_CONFIG_FILE
        if not default_path.exists():
            return AnalyzerConfig()
        path = str(default_path)

    if not Path(path).exists():
        raise ConfigError(f"Configuration file not found: {path}", path=path)

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in configuration file: {e}", path=path)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration file must contain a mapping", path=path)

    logger.debug(f"Loaded configuration from {path}")
    # Accept both a bare mapping and one nested under a 'txscope' section
    return AnalyzerConfig.from_dict(data.get('txscope', data))
