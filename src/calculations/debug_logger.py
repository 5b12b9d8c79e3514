"""
Debug logging framework for emission calculations
Centralizes and standardizes debug output across the calculation system
"""

import os
import logging
from typing import Any, Dict, List, Optional
import json


class EmissionDebugLogger:
    """Centralized debug logger for the noise emission engine"""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._setup_logger()
            EmissionDebugLogger._initialized = True

    def _setup_logger(self):
        """Initialize the logging configuration"""
        env_val = str(os.environ.get("NOISE_DEBUG_EXPORT", "")).strip().lower()
        self.debug_enabled = env_val in {"1", "true", "yes", "on"}

        debug_level = os.environ.get("NOISE_DEBUG_LEVEL", "INFO").upper()

        self.logger = logging.getLogger('noise_emission')
        self.logger.setLevel(getattr(logging, debug_level, logging.INFO))
        self.logger.handlers.clear()

        if self.debug_enabled:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(logging.DEBUG)

            formatter = logging.Formatter(
                '%(asctime)s [EMISSION-%(levelname)s] %(component)s: %(message)s',
                datefmt='%H:%M:%S'
            )
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

            log_file = os.environ.get("NOISE_DEBUG_FILE")
            if log_file:
                file_handler = logging.FileHandler(log_file)
                file_handler.setLevel(logging.DEBUG)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

    def _emit(self, level: int, component: str, message: str, data: Optional[Dict[str, Any]]):
        if not self.debug_enabled:
            return
        if data:
            message = f"{message} {self._format_debug_data(data)}"
        self.logger.log(level, message, extra={'component': component})

    def debug(self, component: str, message: str, data: Optional[Dict[str, Any]] = None):
        """Log debug message with component context"""
        self._emit(logging.DEBUG, component, message, data)

    def info(self, component: str, message: str, data: Optional[Dict[str, Any]] = None):
        """Log info message with component context"""
        self._emit(logging.INFO, component, message, data)

    def warning(self, component: str, message: str, data: Optional[Dict[str, Any]] = None):
        """Log warning message with component context"""
        self._emit(logging.WARNING, component, message, data)

    def error(self, component: str, message: str, error: Optional[Exception] = None,
              data: Optional[Dict[str, Any]] = None):
        """Log error message with component context"""
        if error:
            message += f" Error: {str(error)}"
        self._emit(logging.ERROR, component, message, data)

    def _format_debug_data(self, data: Dict[str, Any]) -> str:
        """Format debug data for logging"""
        try:
            formatted = {}
            for key, value in data.items():
                if key.endswith('spectrum') or key.endswith('_db_bands'):
                    formatted[key] = [f"{float(v):.1f}" for v in value]
                elif key.endswith('_db') or key.endswith('_dba'):
                    formatted[key] = f"{float(value):.1f}dB"
                elif hasattr(value, 'tolist'):
                    formatted[key] = value.tolist()
                else:
                    formatted[key] = value
            return json.dumps(formatted, separators=(',', ':'), default=str)
        except (TypeError, ValueError):
            return str(data)

    def log_source_emission(self, component: str, source_id: Any, ordinal: int,
                            input_mode: str, lden_spectrum: Optional[List[float]] = None):
        """Log the emission computed for one source"""
        data = {
            'source_id': source_id,
            'ordinal': ordinal,
            'input_mode': input_mode,
        }
        if lden_spectrum is not None:
            data['lden_spectrum'] = lden_spectrum
        self.debug(component, "Source emission computed", data)


# Global logger instance
debug_logger = EmissionDebugLogger()
