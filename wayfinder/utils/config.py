from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from pathlib import Path
from typing import Any

from wayfinder.models import SortKey

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigStore:
    """Flat JSON key/value settings file, ``~/.config/<app_name>/config.json`` by default."""

    def __init__(self, app_name: str = "wayfinder", config_dir: Path | None = None) -> None:
        self._config_dir = config_dir or Path.home() / ".config" / app_name
        self._config_path = self._config_dir / "config.json"
        self._data: dict[str, Any] = self._read()

    @property
    def path(self) -> Path:
        return self._config_path

    def _read(self) -> dict[str, Any]:
        try:
            data = json.loads(self._config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._config_path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def get_str(self, key: str, default: str = "") -> str:
        value = self.get(key)
        return default if value is None else str(value)

    def get_int(self, key: str, default: int = 0) -> int:
        try:
            return int(self.get(key, default))
        except (TypeError, ValueError):
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if isinstance(value, str):
            return value.strip().lower() in _TRUTHY
        return bool(value)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def save(self) -> None:
        payload = json.dumps(self._data, indent=2, sort_keys=True)
        try:
            self._config_dir.mkdir(parents=True, exist_ok=True)
            self._config_path.write_text(payload, encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save config %s: %s", self._config_path, exc)

    def clear(self) -> None:
        self._data = {}
        try:
            self._config_path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove config %s: %s", self._config_path, exc)


@dataclass
class Settings:
    history_limit: int = 500
    search_debounce_ms: int = 150
    search_max_processed: int = 10_000
    search_max_matches_per_root: int = 500
    search_result_limit: int = 200
    content_read_limit: int = 1024 * 1024
    content_cache_size: int = 500
    show_hidden: bool = False
    default_sort: SortKey = SortKey.NAME
    trash_dir: Path = Path.home() / ".local/share/Trash"
    operation_log_path: Path = Path.home() / ".cache/wayfinder/logs/operation_log.jsonl"
    operation_log_max_mb: int = 5
    open_backend: str = "auto"
    debug_logging: bool = False

    @classmethod
    def from_config(cls, config: ConfigStore) -> "Settings":
        defaults = cls()
        try:
            sort_key = SortKey(config.get_str("default_sort", defaults.default_sort.value).lower())
        except ValueError:
            sort_key = defaults.default_sort
        return cls(
            history_limit=config.get_int("history_limit", defaults.history_limit),
            search_debounce_ms=config.get_int("search_debounce_ms", defaults.search_debounce_ms),
            search_max_processed=config.get_int("search_max_processed", defaults.search_max_processed),
            search_max_matches_per_root=config.get_int(
                "search_max_matches_per_root", defaults.search_max_matches_per_root
            ),
            search_result_limit=config.get_int("search_result_limit", defaults.search_result_limit),
            content_read_limit=config.get_int("content_read_limit", defaults.content_read_limit),
            content_cache_size=config.get_int("content_cache_size", defaults.content_cache_size),
            show_hidden=config.get_bool("show_hidden", defaults.show_hidden),
            default_sort=sort_key,
            trash_dir=Path(config.get_str("trash_dir", str(defaults.trash_dir))).expanduser(),
            operation_log_path=Path(
                config.get_str("operation_log_path", str(defaults.operation_log_path))
            ).expanduser(),
            operation_log_max_mb=config.get_int("operation_log_max_mb", defaults.operation_log_max_mb),
            open_backend=config.get_str("open_backend", defaults.open_backend).lower(),
            debug_logging=config.get_bool("debug_logging", defaults.debug_logging),
        )
