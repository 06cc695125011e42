"""
User configuration for the hover and completion features.
"""

import os
import tomllib
from dataclasses import dataclass, field, fields
from typing import Any, List, Mapping, Tuple

import yaml

from stylens.stylens_datatypes import SettingsError

DEFAULT_MODULE_NAMES = ("@stylexjs/stylex", "stylex")

# Editor-side (camelCase) key -> field name.
_ALIASES = {
    "hover": "hover",
    "suggestions": "suggestions",
    "useRemForFontSize": "use_rem_for_font_size",
    "aliasModuleNames": "alias_module_names",
}


@dataclass
class Settings:
    hover: bool = True
    suggestions: bool = True
    use_rem_for_font_size: bool = False
    alias_module_names: List[str] = field(default_factory=list)

    @property
    def module_names(self) -> Tuple[str, ...]:
        """Import sources treated as the styling library."""
        return DEFAULT_MODULE_NAMES + tuple(self.alias_module_names)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> 'Settings':
        """Builds settings from a mapping with snake_case or camelCase keys.

        Unknown keys are ignored so a whole editor configuration section can be
        passed in; known keys with the wrong type raise `SettingsError`.
        """
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise SettingsError(f"Settings must be a mapping, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _ALIASES.get(key, key)
            if name not in known:
                continue
            if name == "alias_module_names":
                if isinstance(value, str) or not isinstance(value, (list, tuple)) \
                        or not all(isinstance(v, str) for v in value):
                    raise SettingsError(f"'{key}' must be a list of module names")
                value = list(value)
            elif not isinstance(value, bool):
                raise SettingsError(f"'{key}' must be true or false, got {value!r}")
            values[name] = value
        return cls(**values)


def load_settings(path: str) -> Settings:
    """Reads settings from a YAML or TOML file (chosen by extension).

    A `stylex` table/section, when present, is used instead of the top level.
    """
    ext = os.path.splitext(path)[1].lower()
    try:
        if ext == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        elif ext in (".yaml", ".yml"):
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        else:
            raise SettingsError(f"Unsupported settings file type: '{ext or path}'")
    except OSError as e:
        raise SettingsError(f"Cannot read settings file '{path}': {e}") from e
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise SettingsError(f"Malformed settings file '{path}': {e}") from e

    if data is None:
        return Settings()
    if isinstance(data, Mapping) and isinstance(data.get("stylex"), Mapping):
        data = data["stylex"]
    return Settings.from_mapping(data)
