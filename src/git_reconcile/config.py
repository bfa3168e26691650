import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import APP_NAME, CONFIG_FILE, GITHUB_API_URL, STRATEGIES, URL_FIELDS
from .errors import ConfigError

logger = logging.getLogger(APP_NAME)


SIZE_UNITS = {"k": 1024, "m": 1024**2, "g": 1024**3}
TIME_UNITS = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}


def _split_quantity(value: str, pattern: str, kind: str) -> tuple[float, str]:
    match = re.fullmatch(pattern, value.strip().lower())
    if not match:
        raise ValueError(f"Invalid {kind} format '{value}'")
    return float(match.group(1)), match.group(2)


def parse_size(value: int | str) -> int:
    """Converts a log rotation size such as '512KB' or '5MB' to bytes.

    Units are binary (1KB = 1024 bytes); the trailing 'b' is optional.
    """
    if isinstance(value, int):
        return value
    num, unit = _split_quantity(str(value), r"(\d+(?:\.\d+)?)\s*([kmg])b?", "size")
    return int(num * SIZE_UNITS[unit])


def parse_time(value: int | float | str) -> float:
    """Converts a git command timeout such as '90s', '5min' or '1h' to seconds.

    Bare numbers are taken as seconds. Used for the `--timeout` option too, so
    a ValueError here becomes an argparse usage error.
    """
    if isinstance(value, (int, float)):
        return float(value)
    if str(value).strip().replace(".", "", 1).isdigit():
        return float(value)
    num, unit = _split_quantity(
        str(value), r"(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?", "time"
    )
    return num * TIME_UNITS[unit]


@dataclass
class CoreConfig:
    """What to reconcile and how to integrate remote changes.

    Attributes:
        local_root (str): Directory holding one working copy per repository.
        account (str): The hosting account whose repositories are listed.
        strategy (str): Pull integration strategy, 'rebase' or 'merge'.
        api_url (str): Base URL of the hosting API.
        url_field (str): Repository JSON field used as the clone URL.
    """

    local_root: str = ""
    account: str = ""
    strategy: str = "rebase"
    api_url: str = GITHUB_API_URL
    url_field: str = "git_url"

    @property
    def root_path(self) -> Path:
        return Path(self.local_root).expanduser()


@dataclass
class SyncConfig:
    """Execution settings for clone and pull batches.

    Attributes:
        workers (int): Repositories processed in parallel. 1 runs sequentially.
        command_timeout (float): Seconds before a git subprocess is killed. 0 disables.
        http_timeout (float): Seconds before a hosting API request is abandoned.
    """

    workers: int = 1
    command_timeout: float = 0
    http_timeout: float = 30


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for the log file before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class Config:
    """Configuration aggregator passed explicitly into a reconciliation run.

    Attributes:
        core (CoreConfig): Core settings.
        sync (SyncConfig): Batch execution settings.
        limits (LimitsConfig): Resource limits.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from defaults and a TOML file.

        Args:
            path (Path | None): The file to read. Defaults to the global CONFIG_FILE.

        Returns:
            Config: The populated configuration object.
        """
        instance = cls()
        source = path or CONFIG_FILE
        if source.exists():
            instance._merge_from_file(source)
        elif path is not None:
            logger.warning(f"Config file {path} does not exist. Using defaults.")
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance."""
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
            return
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            return

        unknown = set(data) - {"core", "sync", "limits"}
        if unknown:
            logger.warning(
                f"Unknown config sections in {path}: {', '.join(sorted(unknown))}. "
                "Ignoring."
            )

        if "core" in data:
            self.core = self._update_dataclass("core", self.core, data["core"])
        if "sync" in data:
            self.sync = self._update_dataclass("sync", self.sync, data["sync"])
        if "limits" in data:
            self.limits = self._update_dataclass("limits", self.limits, data["limits"])

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k in ["command_timeout", "http_timeout"]:
                    filtered_updates[k] = parse_time(v)
                elif k == "workers":
                    filtered_updates[k] = int(v)
                else:
                    filtered_updates[k] = str(v)
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)

    def with_overrides(
        self,
        local_root: str | None = None,
        account: str | None = None,
        strategy: str | None = None,
        workers: int | None = None,
        command_timeout: float | None = None,
    ) -> "Config":
        """Returns a copy with command-line values layered over the loaded ones.

        Arguments left as None keep the current value.
        """
        core_updates = {
            k: v
            for k, v in {
                "local_root": local_root,
                "account": account,
                "strategy": strategy,
            }.items()
            if v is not None
        }
        sync_updates = {
            k: v
            for k, v in {
                "workers": workers,
                "command_timeout": command_timeout,
            }.items()
            if v is not None
        }
        return replace(
            self,
            core=replace(self.core, **core_updates),
            sync=replace(self.sync, **sync_updates),
        )

    def validate(self) -> None:
        """Checks that the configuration can drive a run.

        Raises:
            ConfigError: On the first missing or invalid setting.
        """
        if not self.core.local_root:
            raise ConfigError(
                "No local root configured. Set [core].local_root or pass --root."
            )
        if not self.core.account:
            raise ConfigError(
                "No account configured. Set [core].account or pass --account."
            )
        if self.core.strategy not in STRATEGIES:
            raise ConfigError(
                f"Unknown strategy '{self.core.strategy}'. "
                f"Expected one of: {', '.join(STRATEGIES)}."
            )
        if self.core.url_field not in URL_FIELDS:
            raise ConfigError(
                f"Unknown url_field '{self.core.url_field}'. "
                f"Expected one of: {', '.join(URL_FIELDS)}."
            )
        if self.sync.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.sync.workers}.")
        if self.sync.command_timeout < 0:
            raise ConfigError("command_timeout must not be negative.")
