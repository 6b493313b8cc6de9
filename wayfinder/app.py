import logging
from pathlib import Path

from PySide6.QtCore import QThreadPool

from wayfinder.nav.controller import NavigationController
from wayfinder.ops.fs_access import LocalFileSystem
from wayfinder.utils.config import ConfigStore, Settings
from wayfinder.utils.operation_log import OperationLog


def create_session(
    start_path: str | Path | None = None,
    config: ConfigStore | None = None,
    pool: QThreadPool | None = None,
) -> NavigationController:
    settings = Settings.from_config(config or ConfigStore())
    session = NavigationController(
        fs=LocalFileSystem(settings.trash_dir, settings.open_backend),
        settings=settings,
        pool=pool,
        op_log=OperationLog(settings.operation_log_path, settings.operation_log_max_mb),
    )
    session.navigate(start_path or Path.home())
    return session


def setup_logging(debug: bool | None = None, log_dir: Path | None = None) -> Path:
    log_dir = log_dir or Path.home() / ".cache/wayfinder/logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "wayfinder.log"
    if debug is None:
        debug = _load_debug_flag()
    handlers: list[logging.Handler] = [logging.FileHandler(log_path)]
    if debug:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        handlers=handlers,
    )
    return log_path


def _load_debug_flag() -> bool:
    return ConfigStore().get_bool("debug_logging", False)
