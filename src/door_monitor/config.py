from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class MonitorSettings(BaseSettings):
    """
    Configuration for the Door Monitor.
    """

    # Tell pydantic-settings to load environment variables from .env if present.
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",  # ignore unknown env vars
    )

    # --- Identity ---
    site_id: str = "dorm_demo"
    site_name: str = "Dorm Room"

    # --- Photo store ---
    # Both collections live as sub folders of photos_dir, one folder per person.
    photos_dir: Path = Path.home() / "Pictures"
    whitelist_folder_name: str = "Dorm_Room_Monitor_Whitelist"
    intruder_folder_name: str = "Dorm Room Monitor Intruders"

    # Captured photos wait here until they are moved into an intruder folder.
    capture_dir: Path = Path.home() / ".cache" / "door_monitor" / "captures"

    # --- Camera ---
    camera_backend: str = "opencv"  # "opencv" or "fake" (synthetic frames, no hardware)
    camera_index: int = 0

    # --- Face recognition service ---
    recognition_base_url: str = "http://127.0.0.1:8000"
    recognition_api_key: str = ""
    recognition_timeout_sec: float = 15.0
    recognition_similarity_threshold: float = 0.85

    # --- Speech ---
    speech_backend: str = "pyttsx3"  # "pyttsx3" or "log" (no audio device)
    speech_rate: int = 160

    # --- Entry-attempt triggers (sensor bridge -> Door Monitor) ---
    trigger_tcp_enabled: bool = True
    trigger_tcp_host: str = "127.0.0.1"
    trigger_tcp_port: int = 8127

    # --- HTTP API ---
    http_host: str = "127.0.0.1"
    http_port: int = 8128

    # How many finished entry attempts to keep for GET /entries
    history_size: int = 20

    # --- Logging ---
    log_level: str = "INFO"
    debug: bool = False
