"""Environment-driven settings for the worker and the API server."""
import os
import pathlib
import platform
from typing import Any, Dict, Optional

from temporalio.client import Client
from temporalio.envconfig import ClientConfig

from pairs.types import GameConfig

TASK_QUEUE = os.getenv("PAIRS_TASK_QUEUE", "pairs-task-queue")

# GameConfig field -> environment variable holding its default
GAME_CONFIG_ENV = {
    "min_board_size": "PAIRS_MIN_BOARD_SIZE",
    "max_board_size": "PAIRS_MAX_BOARD_SIZE",
    "default_board_size": "PAIRS_DEFAULT_BOARD_SIZE",
    "resize_step": "PAIRS_RESIZE_STEP",
    "game_over_delay_ms": "PAIRS_GAME_OVER_DELAY_MS",
    "hide_delay_ms": "PAIRS_HIDE_DELAY_MS",
}


def load_game_config(overrides: Optional[Dict[str, Any]] = None) -> GameConfig:
    """Build a GameConfig from PAIRS_* environment variables, then overrides.

    Raises ValueError for non-integer values or an inconsistent config.
    """
    values: Dict[str, int] = {}
    for name, env_var in GAME_CONFIG_ENV.items():
        raw = os.getenv(env_var)
        if raw is not None:
            try:
                values[name] = int(raw)
            except ValueError:
                raise ValueError(f"{env_var} must be an integer, got {raw!r}") from None

    for name, value in (overrides or {}).items():
        if name not in GAME_CONFIG_ENV:
            raise ValueError(f"Unknown config option: {name}")
        if not isinstance(value, int) or isinstance(value, bool):
            raise ValueError(f"{name} must be an integer")
        values[name] = value

    return GameConfig(**values)


# Configures and returns a Temporal Client. This uses the default
# settings, unless the TEMPORAL_PROFILE environment variable is set,
# in which case it loads that profile from the temporal.toml file.
async def get_temporal_client() -> Client:
    config_file_path = get_config_file_path()
    profile_name = os.getenv("TEMPORAL_PROFILE")
    if profile_name and config_file_path.is_file():
        connect_config = ClientConfig.load_client_connect_config(
            profile=profile_name,
            config_file=str(config_file_path),
        )
        return await Client.connect(**connect_config)
    return await Client.connect(
        os.getenv("TEMPORAL_ADDRESS", "localhost:7233"),
        namespace=os.getenv("TEMPORAL_NAMESPACE", "default"),
    )


def get_config_file_path() -> pathlib.Path:
    """Default temporal.toml location for the current operating system."""
    home = pathlib.Path.home()
    system = platform.system()

    if system == "Darwin":
        return home / "Library/Application Support/temporalio/temporal.toml"
    if system == "Windows":
        app_data = os.getenv("AppData")
        if app_data is None:
            raise RuntimeError("AppData environment variable not set")
        return pathlib.Path(app_data) / "temporalio/temporal.toml"

    xdg_config_home = os.getenv("XDG_CONFIG_HOME")
    if xdg_config_home:
        return pathlib.Path(xdg_config_home) / "temporalio/temporal.toml"
    return home / ".config/temporalio/temporal.toml"
