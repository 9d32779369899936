import json
import os
from dataclasses import asdict
from pathlib import Path
from typing import Dict, List, Optional

from .errors import ConfigError
from .params import (
    CanvasParams,
    FrameParams,
    GrowthParams,
    PaletteParams,
    RunParams,
    SeedParams,
)

PRESETS_DIR = "presets"


def get_preset_path(preset_name: str, presets_dir: str = PRESETS_DIR) -> Path:
    """Constructs the full path for a given preset name."""
    return Path(presets_dir) / f"{preset_name}.json"


def get_available_presets(presets_dir: str = PRESETS_DIR) -> List[str]:
    """Returns a list of available preset names without the .json extension."""
    if not os.path.exists(presets_dir):
        return []
    return sorted(p.stem for p in Path(presets_dir).glob("*.json") if p.is_file())


def params_to_dict(params: RunParams) -> Dict:
    return asdict(params)


def _section(cls, data: Optional[Dict], name: str):
    data = dict(data or {})
    try:
        return cls(**data)
    except TypeError as e:
        raise ConfigError(f"Invalid '{name}' section: {e}") from None


def params_from_dict(data: Dict) -> RunParams:
    unknown = set(data) - {"canvas", "palette", "growth", "frames"}
    if unknown:
        raise ConfigError(f"Unknown config sections: {sorted(unknown)}")

    canvas = _section(CanvasParams, data.get("canvas"), "canvas")
    canvas.walls = [tuple(w) for w in canvas.walls]
    canvas.blocked = [tuple(b) for b in canvas.blocked]
    canvas.portals = [tuple(q) for q in canvas.portals]

    growth_data = dict(data.get("growth") or {})
    seeds = [_section(SeedParams, s, "growth.seeds") for s in growth_data.pop("seeds", [])]
    growth = _section(GrowthParams, growth_data, "growth")
    growth.seeds = seeds
    growth.channel_weights = tuple(growth.channel_weights)

    return RunParams(
        canvas=canvas,
        palette=_section(PaletteParams, data.get("palette"), "palette"),
        growth=growth,
        frames=_section(FrameParams, data.get("frames"), "frames"),
    )


def save_preset(preset_name: str, params: RunParams, presets_dir: str = PRESETS_DIR) -> None:
    """Saves run parameters to a JSON file."""
    if not preset_name:
        return
    os.makedirs(presets_dir, exist_ok=True)
    filepath = get_preset_path(preset_name, presets_dir)
    with open(filepath, "w") as f:
        json.dump(params_to_dict(params), f, indent=2)


def load_params(path: str) -> RunParams:
    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from None
    return params_from_dict(data)


def load_preset(preset_name: str, presets_dir: str = PRESETS_DIR) -> Optional[RunParams]:
    """Loads a preset JSON file into RunParams."""
    filepath = get_preset_path(preset_name, presets_dir)
    if not filepath.exists():
        return None
    return load_params(str(filepath))
