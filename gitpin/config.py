"""Configuration file holding defaults for the checkout command"""

import configparser
import logging
import os
import platform
from typing import Optional, Any

from pathlib import Path

from gitpin.constants import DEFAULT_STORAGE_MODE, StorageMode

APP_NAME = "gitpin"

logger = logging.getLogger(__name__)

_home = os.path.expanduser("~")

xdg_config_home = os.environ.get("XDG_CONFIG_HOME") or os.path.join(_home, ".config")

default_cfg = {
    "checkout": {"storage": DEFAULT_STORAGE_MODE.value},
}

if platform.system() == "Darwin":
    # macOS
    config_dir = Path("~/Library/Application Support/gitpin").expanduser()
else:
    # Linux or others
    config_dir = Path(os.path.join(xdg_config_home, APP_NAME))


def get_config_file() -> Path:
    override = os.environ.get("GITPIN_CONFIG")
    if override:
        return Path(override).expanduser()
    return config_dir / f"{APP_NAME}.cfg"


class ConfigAccessor:
    """
    A dict-like accessor for the gitpin configuration file.

    Missing files, sections and keys are not errors: lookups fall back to the
    given default.

    Usage:
        config = ConfigAccessor()
        value = config.get('checkout', 'storage', default='fs')
    """

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize a ConfigAccessor with an optional config file path.

        Args:
            config_path: Path to the configuration file. If None, uses the default path.
        """
        if config_path is None:
            self.config_path = get_config_file()
        else:
            self.config_path = config_path

        self.config = configparser.ConfigParser()
        if self.config_path.exists():
            try:
                self.config.read(self.config_path)
            except configparser.Error as e:
                logger.warning(
                    f"Could not parse configuration file {self.config_path}: {e}. "
                    "Using defaults."
                )

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """
        Get a configuration value from the specified section and key.

        Args:
            section: The configuration section
            key: The configuration key
            default: Value to return if the section or key doesn't exist

        Returns:
            The configuration value if it exists, otherwise the default value
        """
        try:
            return self.config[section][key]
        except (KeyError, configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        try:
            return self.config.getboolean(section, key, fallback=default)
        except ValueError:
            logger.warning(
                f"Ignoring non-boolean value for [{section}] {key} in {self.config_path}"
            )
            return default


def get_default_storage_mode(config: Optional[ConfigAccessor] = None) -> str:
    """
    Storage mode used when --storage is not given.

    Unknown values are passed through so that option validation reports them.
    """
    config = config or ConfigAccessor()
    value = config.get("checkout", "storage", default_cfg["checkout"]["storage"])
    return str(value).strip().lower() or StorageMode.FS.value


def get_default_rm_dotgit(config: Optional[ConfigAccessor] = None) -> bool:
    config = config or ConfigAccessor()
    return config.get_bool("checkout", "rm_dotgit", default=False)


def get_default_key_path(config: Optional[ConfigAccessor] = None) -> Optional[str]:
    config = config or ConfigAccessor()
    key_path = config.get("ssh", "key_path")
    if not key_path:
        return None
    return str(Path(key_path).expanduser())
