"""Runtime settings for staff analysis, loaded from environment variables."""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StaffSettings(BaseSettings):
    """Tuning parameters shared by the estimator, the fitter and the editor."""

    n_threads: int = Field(1, ge=1, description="Worker threads for model estimation")

    max_angle_deg: float = Field(5.0, gt=0.0, le=45.0, description="Largest rotation searched")
    angle_step_deg: float = Field(0.5, gt=0.0, description="Coarse rotation search step")
    refine_steps: int = Field(10, ge=1, description="Subdivisions of one coarse step when refining")

    search_radius_spaces: float = Field(
        1.0, gt=0.0, description="Local tracking search radius, in staff spaces"
    )
    tracking_window_spaces: float = Field(
        4.0, gt=0.0, description="Half width of the tracking window, in staff spaces"
    )
    smoothing_window: int = Field(15, ge=1, description="Moving average length for the gradient")
    straight_tolerance: float = Field(
        0.5, ge=0.0, description="Residual gradient variance (px^2) below which a model is straight"
    )

    peak_ratio: float = Field(
        0.4, gt=0.0, le=1.0, description="Fraction of the profile maximum a staff line must reach"
    )
    space_tolerance: float = Field(
        0.25, gt=0.0, lt=1.0, description="Allowed staff spacing deviation, as a fraction of staff_space"
    )

    safety_factor: float = Field(
        2.0, ge=1.0, description="Runs taller than staff_height * safety_factor survive removal"
    )
    keep_staff_image: bool = Field(True, description="Store the ink mask on estimated models")

    model_config = SettingsConfigDict(
        env_prefix="staff_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("smoothing_window", mode="after")
    def make_window_odd(cls, value: int) -> int:
        """Round even smoothing windows up so the filter stays centred."""
        if value % 2 == 0:
            return value + 1
        return value

    @model_validator(mode="after")
    def ensure_step_within_range(self):
        """The coarse step must leave at least one candidate on each side."""

        if self.angle_step_deg > self.max_angle_deg:
            raise ValueError(
                "angle_step_deg must not exceed max_angle_deg "
                f"({self.angle_step_deg} > {self.max_angle_deg})."
            )
        return self


@lru_cache()
def get_settings() -> StaffSettings:
    """Return a cached settings instance."""

    return StaffSettings()
