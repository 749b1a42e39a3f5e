from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Dict, Optional

from .synthesis.declarations import SynthesisOptions

PRESET_DIR = Path(__file__).resolve().parents[2] / "config"
DEFAULT_PRESET = "default.json"


def resolve_config_path(
    preset: Optional[str],
    explicit: Optional[Path],
    log_callback: Optional[Callable[[str], None]] = None,
) -> Optional[Path]:
    if explicit:
        return explicit
    if preset:
        candidate = PRESET_DIR / preset
        if candidate.is_file():
            return candidate
        if candidate.with_suffix(".json").is_file():
            return candidate.with_suffix(".json")
        if log_callback:
            log_callback(f"Preset {preset} not found in {PRESET_DIR}")
    default_path = PRESET_DIR / DEFAULT_PRESET
    if default_path.exists():
        return default_path
    return None


def load_config(path: Optional[Path]) -> Dict[str, object]:
    if path is None:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _section(config: Dict[str, object], name: str) -> Dict[str, object]:
    section = config.get(name, {}) if isinstance(config, dict) else {}
    return section if isinstance(section, dict) else {}


def synthesis_options(config: Dict[str, object]) -> SynthesisOptions:
    synthesis = _section(config, "synthesis")
    return SynthesisOptions(sanitize_names=bool(synthesis.get("sanitizeNames", False)))


def build_env_overrides(config: Dict[str, object]) -> Dict[str, str]:
    env: Dict[str, str] = {}
    export = _section(config, "export")
    if "includeTypes" in export:
        env["BINDINGS_INCLUDE_TYPES"] = "1" if export["includeTypes"] else "0"
    return env


def export_script(config: Dict[str, object]) -> Optional[str]:
    script = _section(config, "export").get("script")
    if isinstance(script, str) and script:
        return script
    return None
