from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Smart Home Simulator"

    # HTTP
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: list[str] = ["*"]

    # Storage
    sqlite_path: str = Field(default="homesim.db")
    state_key: str = "simulation"

    # Logging ("" disables the rotating file)
    log_file: str = "homesim.log"
    log_level: str = "INFO"

    # Tick cadence
    tick_seconds: float = 180

    # Home layout
    light_count: int = 6
    default_temperature: float = 22.0
    default_humidity: float = 50.0

    # Ambient drift: max step per tick and clamp range
    temperature_step: float = 0.1
    temperature_min: float = 18.0
    temperature_max: float = 26.0
    humidity_step: float = 3.0
    humidity_min: float = 30.0
    humidity_max: float = 80.0

    # Motion bursts: delay before switching on, then time spent on
    motion_arm_min_s: float = 180
    motion_arm_max_s: float = 300
    motion_active_min_s: float = 1
    motion_active_max_s: float = 5

    # Per-entity history cap, 0 = unbounded
    max_history_entries: int = 0


settings = Settings()
