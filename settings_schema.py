from pydantic import BaseModel, Field, ValidationError


class SearchSettings(BaseModel):
    threshold: float = Field(0.4, ge=0.0, le=1.0)
    page_limit: int = Field(20, gt=0)


class ProgressionSettings(BaseModel):
    """Autoregulation constants used by the weight suggestion rule."""

    increase_factor: float = Field(1.05, gt=0)
    decrease_factor: float = Field(0.95, gt=0)
    deload_rep_ratio: float = Field(0.8, gt=0)
    easy_effort_max: int = Field(3, ge=1, le=5)
    hold_effort: int = Field(4, ge=1, le=5)
    max_effort: int = Field(5, ge=1, le=5)
    default_effort: int = Field(3, ge=1, le=5)


class SettingsSchema(BaseModel):
    data_dir: str | None = None
    dataset_url: str | None = None
    db_path: str = "workout.db"
    log_level: str = "INFO"
    fuzzy_search_enabled: bool = True
    search: SearchSettings = Field(default_factory=SearchSettings)
    progression: ProgressionSettings = Field(default_factory=ProgressionSettings)


DEFAULT_SETTINGS = SettingsSchema()
DEFAULT_PROGRESSION = DEFAULT_SETTINGS.progression
DEFAULT_SEARCH = DEFAULT_SETTINGS.search


def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
