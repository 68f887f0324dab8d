from .run import MAX_CHANNELS, RunConfig, build_run_config, prepare_run
from .settings import ArchiveSettings, load_settings

__all__ = [
    "MAX_CHANNELS",
    "ArchiveSettings",
    "RunConfig",
    "build_run_config",
    "load_settings",
    "prepare_run",
]
