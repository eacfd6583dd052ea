from dataclasses import dataclass, fields
from pathlib import Path

import yaml
from rich.markup import escape

from uniupdater.constants import CONFIG_FILE
from uniupdater.output import warning

CLEANUP_MODES = ('prompt', 'always', 'never')


@dataclass(frozen=True)
class Settings:
    """Run settings, loaded once and passed down explicitly."""

    cleanup: str = 'prompt'
    auto_confirm: bool = False
    use_colors: bool = True
    check_boot_mount: bool = True
    clean_user_cache: bool = True
    update_flatpak: bool = True
    elevation_tool: str = 'sudo'
    allow_root: bool = False


def load_config(path: Path = CONFIG_FILE) -> dict:
    """Load the raw config mapping."""
    if not path.exists():
        return {}
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RuntimeError(f'Invalid YAML in {path}: {e}') from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise RuntimeError(f'Config at {path} must be a mapping')
    return data


def load_settings(path: Path = CONFIG_FILE) -> Settings:
    """Load settings from the config file, falling back to defaults."""
    data = load_config(path)
    known = {f.name: f for f in fields(Settings)}
    values = {}

    for key, value in data.items():
        if key not in known:
            warning(f'Unknown config key "{escape(str(key))}" in {escape(str(path))}, ignoring')
            continue
        expected = type(getattr(Settings, key))
        if not isinstance(value, expected):
            raise RuntimeError(f'Config key "{key}" must be a {expected.__name__}, got {value!r}')
        values[key] = value

    cleanup = values.get('cleanup', Settings.cleanup)
    if cleanup not in CLEANUP_MODES:
        raise RuntimeError(f'Config key "cleanup" must be one of: {", ".join(CLEANUP_MODES)}')

    return Settings(**values)
