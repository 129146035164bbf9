"""
Sketch Configuration - Imperative Shell

Loads iceconfig.yaml into frozen config dataclasses.
Defaults live here; the YAML file and CLI flags override them.

Validation is pure (validate_config); loading does the file I/O.
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml  # type: ignore

from transition_core import DEFAULT_PROGRESS_INCREMENT, DEFAULT_STEP_PAUSE_TICKS
from tessellation_core import DEFAULT_SEED_COUNT, DEFAULT_RANDOM_SEED
from flake_effects.core import DEFAULT_LAYERS, LAYER_REGISTRY


DEFAULT_CONFIG_PATH = Path(__file__).parent / "iceconfig.yaml"

EXPORT_FORMATS = ('gif', 'mp4')


@dataclass(frozen=True)
class ExportConfig:
    """Frame recorder settings

    Attributes:
        frames: Number of consecutive frames to capture
        format: 'gif' (Pillow) or 'mp4' (FFmpeg)
        output_dir: Directory for exported files
    """
    frames: int = 120
    format: str = 'gif'
    output_dir: str = 'exports'


@dataclass(frozen=True)
class SketchConfig:
    """Everything the sketch shell needs to run

    Attributes:
        width, height: Canvas size in pixels
        fps: Target frame rate
        progress_increment: Step progress added per frame
        step_pause_ticks: Frames of pause between queued steps
        seed_count: Number of Voronoi seeds
        random_seed: Seed for seed placement, noise and cracks
        background: Background RGB
        layers: Enabled decorative layers, in any order
        show_year_label: Draw the current year bottom-left
        font_size: Year label font size
        autoplay: Step forward automatically whenever settled
        export: Frame recorder settings
    """
    width: int = 550
    height: int = 600
    fps: int = 30
    progress_increment: float = DEFAULT_PROGRESS_INCREMENT
    step_pause_ticks: int = DEFAULT_STEP_PAUSE_TICKS
    seed_count: int = DEFAULT_SEED_COUNT
    random_seed: int = DEFAULT_RANDOM_SEED
    background: Tuple[int, int, int] = (5, 15, 50)
    layers: Tuple[str, ...] = DEFAULT_LAYERS
    show_year_label: bool = True
    font_size: int = 20
    autoplay: bool = False
    export: ExportConfig = field(default_factory=ExportConfig)


# ============================================================================
# Validation (pure)
# ============================================================================

INT_FIELDS = ('width', 'height', 'fps', 'step_pause_ticks', 'seed_count', 'random_seed', 'font_size')
BOOL_FIELDS = ('show_year_label', 'autoplay')


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def check_types(config: SketchConfig) -> None:
    """Reject values of the wrong type (YAML strings, scalars for lists)

    Raises:
        ValueError: Naming the first field with a wrong-typed value
    """
    for name in INT_FIELDS:
        value = getattr(config, name)
        if not _is_int(value):
            raise ValueError(f"{name} must be an integer, got {value!r}")
    for name in BOOL_FIELDS:
        value = getattr(config, name)
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false, got {value!r}")

    increment = config.progress_increment
    if isinstance(increment, bool) or not isinstance(increment, (int, float)):
        raise ValueError(f"progress_increment must be a number, got {increment!r}")

    if not isinstance(config.background, tuple) or not all(_is_int(c) for c in config.background):
        raise ValueError(f"background must be a list of integers, got {config.background!r}")
    if not isinstance(config.layers, tuple) or not all(isinstance(n, str) for n in config.layers):
        raise ValueError(f"layers must be a list of layer names, got {config.layers!r}")

    export = config.export
    if not isinstance(export, ExportConfig):
        raise ValueError(f"export must be a mapping, got {export!r}")
    if not _is_int(export.frames):
        raise ValueError(f"export.frames must be an integer, got {export.frames!r}")
    if not isinstance(export.format, str):
        raise ValueError(f"export.format must be a string, got {export.format!r}")
    if not isinstance(export.output_dir, str):
        raise ValueError(f"export.output_dir must be a string, got {export.output_dir!r}")


def validate_config(config: SketchConfig) -> SketchConfig:
    """Check value ranges

    Returns:
        The same config

    Raises:
        ValueError: On the first invalid value
    """
    check_types(config)

    if config.width <= 0 or config.height <= 0:
        raise ValueError(f"Canvas size must be positive, got {config.width}x{config.height}")
    if config.fps <= 0:
        raise ValueError(f"fps must be positive, got {config.fps}")
    if not 0.0 < config.progress_increment <= 1.0:
        raise ValueError(f"progress_increment must be in (0, 1], got {config.progress_increment}")
    if config.step_pause_ticks < 0:
        raise ValueError(f"step_pause_ticks must be >= 0, got {config.step_pause_ticks}")
    if config.seed_count < 0:
        raise ValueError(f"seed_count must be >= 0, got {config.seed_count}")
    if len(config.background) != 3 or not all(0 <= c <= 255 for c in config.background):
        raise ValueError(f"background must be an RGB triple in 0-255, got {config.background}")
    if config.font_size <= 0:
        raise ValueError(f"font_size must be positive, got {config.font_size}")

    unknown = [name for name in config.layers if name not in LAYER_REGISTRY]
    if unknown:
        raise ValueError(f"Unknown layer(s): {', '.join(unknown)}")

    if config.export.frames <= 0:
        raise ValueError(f"export.frames must be positive, got {config.export.frames}")
    if config.export.format not in EXPORT_FORMATS:
        raise ValueError(f"export.format must be one of {EXPORT_FORMATS}, got {config.export.format!r}")

    return config


def _as_tuple(name: str, value: Any) -> tuple:
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list, got {value!r}")
    return tuple(value)


def config_from_dict(data: Dict[str, Any]) -> SketchConfig:
    """Build a validated SketchConfig from a parsed YAML mapping

    Raises:
        ValueError: For unknown keys or invalid values
    """
    known = {f.name for f in fields(SketchConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown config key(s): {', '.join(unknown)}")

    values = dict(data)

    if 'export' in values:
        export_data = values['export'] or {}
        if not isinstance(export_data, dict):
            raise ValueError("'export' must be a mapping")
        export_known = {f.name for f in fields(ExportConfig)}
        export_unknown = sorted(set(export_data) - export_known)
        if export_unknown:
            raise ValueError(f"Unknown export key(s): {', '.join(export_unknown)}")
        values['export'] = ExportConfig(**export_data)

    if 'background' in values:
        values['background'] = _as_tuple('background', values['background'])
    if 'layers' in values:
        values['layers'] = _as_tuple('layers', values['layers'] or ())

    return validate_config(SketchConfig(**values))


# ============================================================================
# Loading (imperative)
# ============================================================================

def load_config(config_path: Optional[str] = None) -> SketchConfig:
    """Load sketch configuration

    Imperative shell: reads the YAML file from disk.

    Args:
        config_path: Path to a YAML config; None returns the defaults

    Returns:
        Validated SketchConfig

    Raises:
        FileNotFoundError: If config_path does not exist
        ValueError: If the file is not a mapping or holds invalid values
    """
    if config_path is None:
        return validate_config(SketchConfig())

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping, got {type(data).__name__}")

    return config_from_dict(data)


def apply_overrides(config: SketchConfig, **overrides: Any) -> SketchConfig:
    """Replace fields with CLI values, skipping None

    Keys prefixed with 'export_' go to the nested ExportConfig.
    """
    top = {}
    export = {}
    for key, value in overrides.items():
        if value is None:
            continue
        if key.startswith('export_'):
            export[key[len('export_'):]] = value
        else:
            top[key] = value

    if export:
        top['export'] = replace(config.export, **export)

    return validate_config(replace(config, **top))
