"""Configuration loader for secret-projector."""
import os
import time
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, Optional, Tuple
import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SECRET_PROJECTOR_CONFIG"

DEFAULT_LABEL_MANAGED_KEY = "secret-projector/managed-secret"
DEFAULT_LABEL_VERSION_KEY = "secret-projector/secret-version"


class ConfigError(Exception):
    """Configuration error exception."""
    pass


def default_config_path() -> Path:
    return Path.home() / ".config" / "secret-projector" / "config.yml"


def _get_config_path(explicit: Optional[str] = None) -> Tuple[Optional[str], Optional[str]]:
    """
    Get config file path.

    Priority order:
    1. Explicit path (--config argument)
    2. SECRET_PROJECTOR_CONFIG environment variable
    3. Default location: ~/.config/secret-projector/config.yml

    The config file is optional; settings may come entirely from CLI flags.

    Returns:
        Tuple of (absolute path or None, source name or None)

    Raises:
        ConfigError: If an explicitly requested config file doesn't exist
    """
    # 1. Explicit argument
    if explicit:
        config_path = Path(explicit).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Configuration file not found at: {config_path}")
        logger.info(f"Using config from argument: {config_path}")
        return str(config_path), "argument"

    # 2. Environment variable
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        config_path = Path(env_path).expanduser()
        if not config_path.is_file():
            raise ConfigError(
                f"Configuration file from {CONFIG_ENV_VAR} not found at: {config_path}"
            )
        logger.info(f"Using config from {CONFIG_ENV_VAR}: {config_path}")
        return str(config_path), "environment"

    # 3. Default location
    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config), "default"

    logger.debug(f"No config file found at {default_config}, using flags and defaults only")
    return None, None


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the config file; when None, the file is located
            with _get_config_path() and an empty dict is returned if none exists

    Returns:
        Dict of config keys, matching the ProjectorSettings field names

    Raises:
        ConfigError: If the config file is unreadable, invalid or empty
    """
    if config_path is None:
        config_path, _ = _get_config_path()
        if config_path is None:
            return {}

    if not os.path.exists(config_path):
        raise ConfigError(f"Configuration file not found at: {config_path}")

    # Load YAML
    try:
        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {config_path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {config_path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {config_path} must contain a mapping")

    unknown = set(config) - set(ProjectorSettings.__dataclass_fields__)
    if unknown:
        raise ConfigError(
            f"Unknown keys in config at {config_path}: {', '.join(sorted(unknown))}"
        )

    if 'creds_repos' in config and not isinstance(config['creds_repos'], dict):
        raise ConfigError(
            f"'creds_repos' in config at {config_path} must be a mapping\n"
            f"Required format:\n"
            f"creds_repos:\n"
            f"  production: /path/to/creds/production"
        )

    logger.info(f"Configuration loaded successfully from {config_path}")
    return config


@dataclass
class ProjectorSettings:
    """Process-wide settings shared by all projection mappings."""
    creds_repos: Dict[str, str] = field(default_factory=dict)
    manifests_path: str = ""
    output_dir: str = ""
    creds_encryption_key_file: str = ""
    creds_key_decryption_key_file: str = ""
    add_deploy_labels: bool = True
    generation: str = field(default_factory=lambda: str(int(time.time())))
    label_managed_key: str = DEFAULT_LABEL_MANAGED_KEY
    label_version_key: str = DEFAULT_LABEL_VERSION_KEY
    debug: bool = False
    show_secrets: bool = True

    def creds_root_path(self, repo: str) -> str:
        """
        Resolve a repository tag to its creds root directory.

        Raises:
            ConfigError: If no creds repo is configured for the tag
        """
        try:
            return self.creds_repos[repo]
        except KeyError:
            raise ConfigError(
                f"No creds repo configured for '{repo}' "
                f"(perhaps you missed a --creds-repo={repo}=/path/to/repo argument)"
            ) from None


def build_settings(file_config: Optional[Dict[str, Any]] = None,
                   overrides: Optional[Dict[str, Any]] = None) -> ProjectorSettings:
    """
    Resolve settings from layered sources.

    Priority order (highest first):
    1. overrides (CLI flags); None values are ignored
    2. file_config (config file)
    3. ProjectorSettings defaults

    creds_repos are merged per label, with overrides winning.
    """
    file_config = dict(file_config or {})
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    creds_repos = dict(file_config.pop('creds_repos', None) or {})
    creds_repos.update(overrides.pop('creds_repos', None) or {})

    values = {**file_config, **overrides}
    values['creds_repos'] = {str(k): str(v) for k, v in creds_repos.items()}
    if 'generation' in values:
        values['generation'] = str(values['generation'])
    return ProjectorSettings(**values)


def _validate_path(name: str, path: str, directory: bool) -> None:
    if not os.path.exists(path):
        raise ConfigError(f"Unable to open {name} argument {path}: no such file or directory")
    if directory and not os.path.isdir(path):
        raise ConfigError(f"{name} argument {path} is not a directory")
    if not directory and os.path.isdir(path):
        raise ConfigError(f"{name} argument {path} is not a file")


def validate_settings(settings: ProjectorSettings) -> None:
    """
    Validate settings before any manifest is loaded.

    Raises:
        ConfigError: If a required creds repo or manifests directory is missing,
            or an optional key file is set but doesn't exist
    """
    if not settings.creds_repos:
        raise ConfigError("At least 1 --creds-repo argument is required")

    for label, path in settings.creds_repos.items():
        if not label:
            raise ConfigError("creds-repo requires a label=path argument, but no label found")
        if not path:
            raise ConfigError(f"creds-repo label {label} requires a path")
        _validate_path(f"creds-repo {label}", path, directory=True)

    if not settings.manifests_path:
        raise ConfigError("manifests requires an argument")
    _validate_path("manifests", settings.manifests_path, directory=True)

    optional_files = {
        "creds-encryption-key": settings.creds_encryption_key_file,
        "creds-key-decryption-key": settings.creds_key_decryption_key_file,
    }
    for name, path in optional_files.items():
        if path:
            _validate_path(name, path, directory=False)

    logger.debug(f"Using creds repos: {settings.creds_repos}")
    logger.debug(f"Using manifests path: {settings.manifests_path}")
