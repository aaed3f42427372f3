"""Configuration file loading."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from .analysis import AnalysisConfig
from .composition import Classification, RefrigerantMixture


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a YAML (or JSON) configuration file.

    Args:
        config_path: Path to the configuration file. If None, an empty
                     configuration is returned and all defaults apply.

    Returns:
        A dictionary containing the configuration settings.
    """
    if config_path is None:
        return {}

    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"Configuration root must be a mapping: {path}")
    return config


def analysis_config_from_dict(section: Optional[Mapping[str, Any]]) -> AnalysisConfig:
    """Build an :class:`AnalysisConfig` from the ``detector`` section; unknown keys are ignored."""
    section = dict(section or {})
    known = {k: v for k, v in section.items() if k in AnalysisConfig.field_names()}
    if "scales" in known:
        scales = known["scales"]
        if not isinstance(scales, (list, tuple)):
            raise ValueError("detector.scales must be a list of numbers")
        known["scales"] = tuple(scales)
    return AnalysisConfig(**known)


def mixtures_from_dict(section: Optional[Mapping[str, Any]]) -> Dict[str, RefrigerantMixture]:
    """Build the reference mixture library from the ``mixtures`` section."""
    library: Dict[str, RefrigerantMixture] = {}
    for name, entry in (section or {}).items():
        if not isinstance(entry, Mapping) or "components" not in entry:
            raise ValueError(f"Mixture '{name}' needs a 'components' mapping")
        classifications = {
            label: Classification(**(params or {}))
            for label, params in (entry.get("classifications") or {}).items()
        }
        mixture = RefrigerantMixture(name, dict(entry["components"]), classifications)
        library[mixture.identifier] = mixture
    return library
