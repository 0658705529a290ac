import os
import yaml

from settings_schema import SettingsSchema, validate_settings

APP_VERSION = "1.0.0"


class YamlConfig:
    """Load and save tracker settings to a YAML file."""

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} must contain a mapping")
        return data

    def save(self, data: dict) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(dict(data), f, sort_keys=True)


def load_settings(path: str = "settings.yaml") -> SettingsSchema:
    """Return validated settings, falling back to defaults for missing keys."""
    return validate_settings(YamlConfig(path).load())


def save_settings(settings: SettingsSchema, path: str = "settings.yaml") -> None:
    YamlConfig(path).save(settings.model_dump())
