"""
LDEN run configuration - input mode selection, active periods and rail defaults
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from calculations.acoustic_utilities import AcousticConstants
from calculations.emission_constants import (
    DEFAULT_RAIL_ROUGHNESS_ID, DEFAULT_TRACK_TRANSFER_ID, RAIL_HEIGHT_ROLLING
)


class InputMode(Enum):
    """How the emission of a source row is obtained"""
    REFERENCE = "reference"          # constant 90 dB(A), synthetic sources
    LW_DEN = "lw_den"                # per-band LW columns on the row
    TRAFFIC_FLOW = "traffic_flow"    # road traffic descriptors
    RAIL_FLOW = "rail_flow"          # rail traffic descriptors


class RailSchema(Enum):
    """Column layouts accepted for rail traffic rows"""
    GEOSTANDARD = "geostandard"
    SHORT = "short"


def normalize_enum_text(value: Any) -> Any:
    """Enum members may be written by name or value, in any case"""
    if isinstance(value, str):
        return value.strip().lower()
    return value


class LdenConfig(BaseModel):
    """Configuration shared by every source of one emission run"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    input_mode: InputMode = Field(
        default=InputMode.TRAFFIC_FLOW,
        description="How source rows are turned into emission spectra"
    )
    compute_lday: bool = True
    compute_levening: bool = True
    compute_lnight: bool = True
    compute_lden: bool = True
    # Rail
    rail_schema: RailSchema = RailSchema.GEOSTANDARD
    train_height: int = RAIL_HEIGHT_ROLLING
    rail_roughness_id: int = DEFAULT_RAIL_ROUGHNESS_ID
    track_transfer_id: int = DEFAULT_TRACK_TRANSFER_ID
    # Direct spectrum columns are named <prefix><period><frequency>, e.g. LWD63
    lw_frequency_prepend: str = "LW"
    # Explicit band axis; None selects the axis of the input mode
    frequency_override: Optional[List[int]] = Field(
        default=None,
        alias="frequencies",
        description="Band centre frequencies replacing the axis of the input mode"
    )

    @field_validator("input_mode", "rail_schema", mode="before")
    @classmethod
    def _normalize_enum(cls, value):
        return normalize_enum_text(value)

    @property
    def frequencies(self) -> List[int]:
        """Band centre frequencies of every spectrum produced by this run"""
        if self.frequency_override:
            return list(self.frequency_override)
        if self.input_mode == InputMode.RAIL_FLOW:
            return list(AcousticConstants.THIRD_OCTAVE_BANDS)
        return list(AcousticConstants.OCTAVE_BANDS)

    @property
    def band_count(self) -> int:
        return len(self.frequencies)

    def with_mode(self, input_mode: InputMode) -> 'LdenConfig':
        """Copy of this configuration using another input mode"""
        return self.model_copy(update={'input_mode': input_mode})

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> 'LdenConfig':
        """
        Build a configuration from plain settings values

        Unknown keys are ignored; the band axis may be given as "frequencies".

        Raises:
            pydantic.ValidationError: for values that cannot be coerced
        """
        return cls.model_validate(values)
