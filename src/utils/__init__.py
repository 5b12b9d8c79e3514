"""
Utils package - Settings handling for the noise emission engine
"""

from .settings_manager import SettingsManager, get_settings_manager, reset_settings_manager

__all__ = [
    'SettingsManager',
    'get_settings_manager',
    'reset_settings_manager'
]
