"""
Settings Manager - Handles emission run settings from a JSON file and the environment

Every setting can be given as a NOISE_* environment variable. A JSON settings
file (path in NOISE_EMISSION_SETTINGS) supplies values the environment does
not set.
"""

import os
from typing import Any, Dict, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, JsonConfigSettingsSource, SettingsConfigDict

from models.lden_config import InputMode, LdenConfig, normalize_enum_text


class EmissionSettings(BaseSettings):
    """Emission engine settings."""

    model_config = SettingsConfigDict(env_prefix="NOISE_", extra="ignore")

    emission_settings: Optional[str] = Field(
        default=None,
        description="Path of the JSON settings file"
    )
    train_coefficients: Optional[str] = Field(
        default=None,
        description="Rail coefficient document replacing the bundled one"
    )
    road_coefficients: Optional[str] = Field(
        default=None,
        description="Road coefficient document replacing the bundled one"
    )
    input_mode: Optional[InputMode] = Field(
        default=None,
        description="Input mode overriding the lden section"
    )
    compute_lday: Optional[bool] = None
    compute_levening: Optional[bool] = None
    compute_lnight: Optional[bool] = None
    compute_lden: Optional[bool] = None
    lden: Dict[str, Any] = Field(
        default_factory=dict,
        description="Run configuration values, see LdenConfig"
    )

    @field_validator("input_mode", mode="before")
    @classmethod
    def _normalize_mode(cls, value):
        return normalize_enum_text(value)

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        # Explicit arguments, then environment, then the JSON settings file
        init_kwargs = init_settings.init_kwargs
        if 'emission_settings' in init_kwargs:
            json_file = init_kwargs['emission_settings']
        else:
            json_file = os.environ.get("NOISE_EMISSION_SETTINGS")
        if not json_file:
            return (init_settings, env_settings)
        return (init_settings, env_settings, JsonConfigSettingsSource(settings_cls, json_file=json_file))


class SettingsManager:
    """Manages emission engine settings"""

    # Period flags that the environment may override in the run configuration
    PERIOD_FLAGS = ('compute_lday', 'compute_levening', 'compute_lnight', 'compute_lden')

    def __init__(self, settings_path=None):
        """Initialize the settings manager"""
        self.settings_path = settings_path or os.environ.get("NOISE_EMISSION_SETTINGS")
        self.settings = self._read_settings()

    def _read_settings(self):
        try:
            return EmissionSettings(emission_settings=self.settings_path)
        except (ValueError, TypeError) as e:
            # Corrupt file or invalid values: keep the environment only
            print(f"Warning: Could not read emission settings from {self.settings_path}: {e}")
        try:
            return EmissionSettings(emission_settings=None)
        except ValidationError as e:
            print(f"Warning: Invalid emission settings in the environment: {e}")
            return EmissionSettings.model_construct()

    def get_coefficient_path(self, kind):
        """
        Get the coefficient document path configured for a model family

        Args:
            kind (str): 'train' or 'road'

        Returns:
            str or None: Configured path, or None to use the bundled document
        """
        if kind == 'train':
            return self.settings.train_coefficients or None
        if kind == 'road':
            return self.settings.road_coefficients or None
        raise ValueError(f"Unknown coefficient family: {kind}")

    def get_lden_config(self):
        """
        Build the run configuration

        Returns:
            LdenConfig: lden section of the settings, with top-level values
            (NOISE_INPUT_MODE, NOISE_COMPUTE_*) taking precedence
        """
        values = dict(self.settings.lden)
        if self.settings.input_mode is not None:
            values['input_mode'] = self.settings.input_mode
        for flag in self.PERIOD_FLAGS:
            value = getattr(self.settings, flag)
            if value is not None:
                values[flag] = value
        return LdenConfig.from_dict(values)


# Global instance
_settings_manager = None


def get_settings_manager():
    """Get the global settings manager instance"""
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


def reset_settings_manager():
    """Drop the global instance so the next access re-reads the environment"""
    global _settings_manager
    _settings_manager = None
