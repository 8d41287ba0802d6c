# src/artifact_downloader/config.py

"""
Credential and settings loading.

Settings are layered from YAML files (project-local files first, then the
per-user file managed by platformdirs) and finally from environment variables,
which win over any file value.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import platformdirs
import yaml

from artifact_downloader.constants import (
    APP_NAME,
    APPSTORE_ISSUER_ID_ENV_VAR,
    APPSTORE_KEY_ID_ENV_VAR,
    APPSTORE_PRIVATE_KEY_PATH_ENV_VAR,
    CONFIG_FILE_NAME,
    FIREBASE_PROJECT_ID_ENV_VAR,
    FIREBASE_SERVICE_ACCOUNT_PATH_ENV_VAR,
    LOCAL_CONFIG_FILE_NAMES,
)
from artifact_downloader.exceptions import ConfigFileError, ConfigValidationError
from artifact_downloader.log_utils import logger
from artifact_downloader.models import AppStoreConnectConfig, FirebaseConfig, Pathish

APP_STORE_CONNECT_SECTION = "app_store_connect"
FIREBASE_SECTION = "firebase"

# (config key, environment variable) per section
APP_STORE_CONNECT_KEYS: Tuple[Tuple[str, str], ...] = (
    ("key_id", APPSTORE_KEY_ID_ENV_VAR),
    ("issuer_id", APPSTORE_ISSUER_ID_ENV_VAR),
    ("private_key_path", APPSTORE_PRIVATE_KEY_PATH_ENV_VAR),
)
FIREBASE_KEYS: Tuple[Tuple[str, str], ...] = (
    ("project_id", FIREBASE_PROJECT_ID_ENV_VAR),
    ("service_account_path", FIREBASE_SERVICE_ACCOUNT_PATH_ENV_VAR),
)


def get_user_config_file() -> Path:
    """Return the per-user config file path inside the platformdirs config directory."""
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def default_config_paths() -> List[Path]:
    """
    Config files consulted when none are given explicitly, lowest precedence first.
    """
    local_files = [Path.cwd() / name for name in LOCAL_CONFIG_FILE_NAMES]
    return local_files + [get_user_config_file()]


@dataclass
class Settings:
    """
    Loaded settings. Credential sections may be partial; use the `require_*`
    helpers to obtain a validated provider config.
    """

    app_store_connect: Dict[str, str] = field(default_factory=dict)
    firebase: Dict[str, str] = field(default_factory=dict)
    log_level: Optional[str] = None
    sources: List[Path] = field(default_factory=list)

    @staticmethod
    def _missing(
        section: Dict[str, str], keys: Tuple[Tuple[str, str], ...]
    ) -> List[str]:
        return [env_var for key, env_var in keys if not section.get(key)]

    def missing_app_store_connect_keys(self) -> List[str]:
        return self._missing(self.app_store_connect, APP_STORE_CONNECT_KEYS)

    def missing_firebase_keys(self) -> List[str]:
        return self._missing(self.firebase, FIREBASE_KEYS)

    def require_app_store_connect(self) -> AppStoreConnectConfig:
        """
        Return the App Store Connect credentials.

        Raises:
            ConfigValidationError: If any credential is missing.
        """
        missing = self.missing_app_store_connect_keys()
        if missing:
            raise ConfigValidationError(
                "Missing App Store Connect configuration: " + ", ".join(missing),
                details=(
                    "Set these environment variables or the "
                    f"'{APP_STORE_CONNECT_SECTION}' section of {CONFIG_FILE_NAME}"
                ),
            )
        return AppStoreConnectConfig(
            key_id=self.app_store_connect["key_id"],
            issuer_id=self.app_store_connect["issuer_id"],
            private_key_path=self.app_store_connect["private_key_path"],
        )

    def require_firebase(self) -> FirebaseConfig:
        """
        Return the Firebase App Distribution credentials.

        Raises:
            ConfigValidationError: If any credential is missing.
        """
        missing = self.missing_firebase_keys()
        if missing:
            raise ConfigValidationError(
                "Missing Firebase configuration: " + ", ".join(missing),
                details=(
                    "Set these environment variables or the "
                    f"'{FIREBASE_SECTION}' section of {CONFIG_FILE_NAME}"
                ),
            )
        return FirebaseConfig(
            project_id=self.firebase["project_id"],
            service_account_path=self.firebase["service_account_path"],
        )


def _read_config_file(path: Path) -> Dict[str, Any]:
    """
    Parse one YAML config file.

    Raises:
        ConfigFileError: If the file cannot be read, is malformed YAML, or its
            top level is not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigFileError(f"Failed to load configuration from {path}", str(e)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigFileError(
            f"Invalid configuration in {path}",
            "Top-level YAML document must be a mapping",
        )
    return data


def _merge_section(
    target: Dict[str, str], data: Dict[str, Any], section: str, path: Path
) -> None:
    values = data.get(section)
    if values is None:
        return
    if not isinstance(values, dict):
        raise ConfigFileError(
            f"Invalid configuration in {path}", f"'{section}' must be a mapping"
        )
    for key, value in values.items():
        if value is not None and str(value).strip():
            target[str(key)] = str(value).strip()


def load_settings(
    config_paths: Optional[Sequence[Pathish]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """
    Load settings from YAML config files and environment variables.

    Files that do not exist are skipped. Later files override earlier ones key by
    key within each section; non-empty environment variables override any file.

    Parameters:
        config_paths (Optional[Sequence[Pathish]]): Files to read, lowest precedence
            first. Defaults to `default_config_paths()`.
        environ (Optional[Mapping[str, str]]): Environment mapping. Defaults to
            `os.environ`.

    Returns:
        Settings: The merged settings.

    Raises:
        ConfigFileError: If an existing config file is unreadable or malformed.
    """
    paths = (
        [Path(p).expanduser() for p in config_paths]
        if config_paths is not None
        else default_config_paths()
    )
    env = os.environ if environ is None else environ
    settings = Settings()

    for path in paths:
        if not path.is_file():
            continue
        logger.debug(f"Loading configuration from {path}")
        data = _read_config_file(path)
        _merge_section(settings.app_store_connect, data, APP_STORE_CONNECT_SECTION, path)
        _merge_section(settings.firebase, data, FIREBASE_SECTION, path)
        if data.get("log_level"):
            settings.log_level = str(data["log_level"])
        settings.sources.append(path)

    for section, keys in (
        (settings.app_store_connect, APP_STORE_CONNECT_KEYS),
        (settings.firebase, FIREBASE_KEYS),
    ):
        for key, env_var in keys:
            value = (env.get(env_var) or "").strip()
            if value:
                section[key] = value

    return settings
