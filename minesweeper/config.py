"""Environment configuration and the Temporal client factory."""
import os
import pathlib
import platform
from dataclasses import dataclass
from typing import Optional

from temporalio.client import Client
from temporalio.envconfig import ClientConfig


@dataclass
class Settings:
    port: int = 3000
    temporal_address: str = "localhost:7233"
    temporal_namespace: str = "default"
    temporal_profile: Optional[str] = None
    task_queue: str = "minesweeper-task-queue"
    data_dir: str = os.path.join(os.path.expanduser("~"), ".minesweeper")


def load_settings() -> Settings:
    """Read settings from the environment, falling back to the defaults."""
    defaults = Settings()
    return Settings(
        port=int(os.getenv("PORT", defaults.port)),
        temporal_address=os.getenv("TEMPORAL_ADDRESS", defaults.temporal_address),
        temporal_namespace=os.getenv("TEMPORAL_NAMESPACE", defaults.temporal_namespace),
        temporal_profile=os.getenv("TEMPORAL_PROFILE") or None,
        task_queue=os.getenv("MINESWEEPER_TASK_QUEUE", defaults.task_queue),
        data_dir=os.getenv("MINESWEEPER_DATA_DIR", defaults.data_dir),
    )


# Where the Temporal CLI keeps its profiles on this operating system.
def temporal_config_file() -> pathlib.Path:
    if platform.system() == "Darwin":
        return pathlib.Path.home() / "Library/Application Support/temporalio/temporal.toml"
    if platform.system() == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        return pathlib.Path(app_data) / "temporalio/temporal.toml"
    config_home = os.getenv("XDG_CONFIG_HOME")
    base = pathlib.Path(config_home) if config_home else pathlib.Path.home() / ".config"
    return base / "temporalio/temporal.toml"


async def get_temporal_client(settings: Optional[Settings] = None) -> Client:
    """Connect using the named profile if one is configured, else the address."""
    settings = settings or load_settings()
    config_file = temporal_config_file()
    if settings.temporal_profile and config_file.is_file():
        connect_config = ClientConfig.load_client_connect_config(
            profile=settings.temporal_profile,
            config_file=str(config_file),
        )
        return await Client.connect(**connect_config)
    return await Client.connect(
        settings.temporal_address,
        namespace=settings.temporal_namespace,
    )
