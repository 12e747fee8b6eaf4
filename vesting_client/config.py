# vesting_client/config.py
import os
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

from vesting_client.abi import ANVIL_CHAIN_ID, DEFAULT_CONTRACT_ADDRESS
from vesting_client.core.errors import ConfigError
from vesting_client.core.validation import validate_address

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "rpc_url": "http://127.0.0.1:8545",
    "contract_address": DEFAULT_CONTRACT_ADDRESS,
    "required_chain_id": ANVIL_CHAIN_ID,
    "required_chain_name": "Anvil",
    "owner_stale_seconds": 5.0,
    "owner_refetch_seconds": 10.0,
    "request_timeout": 30.0,
    "receipt_timeout": None,
    "receipt_poll_latency": 0.5,
    "private_key": None,
}

REPO_CONFIG_FILES = [
    Path("./config/vesting_client.json"),
    Path("./vesting_client.json"),
]
USER_CONFIG_FILE = Path.home() / ".vesting_client" / "config.json"

# env var -> (config key, type)
ENV_VARS = {
    "VESTING_RPC_URL": ("rpc_url", str),
    "VESTING_CONTRACT_ADDRESS": ("contract_address", str),
    "VESTING_CHAIN_ID": ("required_chain_id", int),
    "VESTING_CHAIN_NAME": ("required_chain_name", str),
    "VESTING_OWNER_STALE_SECONDS": ("owner_stale_seconds", float),
    "VESTING_OWNER_REFETCH_SECONDS": ("owner_refetch_seconds", float),
    "VESTING_REQUEST_TIMEOUT": ("request_timeout", float),
    "VESTING_RECEIPT_TIMEOUT": ("receipt_timeout", float),
    "VESTING_PRIVATE_KEY": ("private_key", str),
}

SECRET_KEYS = {"private_key"}


def _read_config_file(config_file: Path) -> dict:
    with open(config_file, "r") as f:
        file_config = json.load(f)
    if not isinstance(file_config, dict):
        raise ConfigError(f"Config file {config_file} must contain a JSON object.")
    # Secrets are only accepted from the environment
    for key in SECRET_KEYS:
        if file_config.pop(key, None) is not None:
            logger.warning(f"Ignoring '{key}' in {config_file}; set it through the environment instead")
    return file_config


def load_config(config_override=None, config_path=None, use_dotenv=True):
    """
    Load client configuration from multiple sources with precedence.

    Precedence (highest first):
    1. Environment variables (VESTING_*), including values from a .env file
    2. `config_override` dictionary (if provided)
    3. Config file: `config_path`, else ./config/vesting_client.json or ./vesting_client.json
    4. Config file in ~/.vesting_client/config.json
    5. Default values

    Args:
        config_override: Optional dictionary to override loaded config.
        config_path: Optional explicit config file path.
        use_dotenv: Whether to load a .env file into the environment first.

    Returns:
        dict: The final client configuration.

    Raises:
        ConfigError: if a config file is unreadable or a value is invalid.
    """
    if use_dotenv:
        load_dotenv()

    config = dict(DEFAULT_CONFIG)

    candidates = [Path(config_path)] if config_path else REPO_CONFIG_FILES + [USER_CONFIG_FILE]
    if config_path and not candidates[0].exists():
        raise ConfigError(f"Config file not found: {config_path}")

    file_config = {}
    for config_file in candidates:
        if not config_file.exists():
            continue
        try:
            file_config = _read_config_file(config_file)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in config file {config_file}: {e}", cause=e) from e
        logger.info(f"Loaded client config from: {config_file}")
        break
    else:
        logger.debug("No client config file found, using defaults")

    unknown = set(file_config) - set(DEFAULT_CONFIG)
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {sorted(unknown)}")
    config.update({k: v for k, v in file_config.items() if k in DEFAULT_CONFIG})

    if config_override and isinstance(config_override, dict):
        config_override = dict(config_override)
        for key in SECRET_KEYS:
            if config_override.pop(key, None) is not None:
                logger.warning(f"Ignoring '{key}' in config override; set it through the environment instead")
        config.update(config_override)
        logger.debug(f"Client config updated with override keys: {sorted(config_override)}")

    env_config = {}
    for env_name, (key, cast) in ENV_VARS.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            env_config[key] = cast(raw)
        except (ValueError, TypeError):
            logger.warning(f"Invalid {env_name} environment variable. Using default/config value.")
    if env_config:
        config.update(env_config)
        logger.info(f"Client config updated with environment variables: {sorted(env_config)}")

    _validate_config(config)

    log_config = config.copy()
    for key in SECRET_KEYS:
        if log_config.get(key):
            log_config[key] = "****"
    logger.debug(f"Final client config: {log_config}")

    return config


def _validate_config(config):
    if not validate_address(config["contract_address"]):
        raise ConfigError(f"Invalid contract address: {config['contract_address']!r}")
    try:
        config["required_chain_id"] = int(config["required_chain_id"])
    except (ValueError, TypeError) as e:
        raise ConfigError(f"Invalid required_chain_id: {config['required_chain_id']!r}", cause=e) from e
    for key in ("owner_stale_seconds", "owner_refetch_seconds", "request_timeout", "receipt_timeout"):
        if key == "receipt_timeout" and config[key] is None:
            continue
        try:
            config[key] = float(config[key])
        except (ValueError, TypeError) as e:
            raise ConfigError(f"{key} must be a number.", cause=e) from e
        if config[key] <= 0:
            raise ConfigError(f"{key} must be positive.")


def save_config(config, use_repo_config=True):
    """
    Save client configuration to file (JSON). Secrets are never written.

    Args:
        config: Dictionary containing configuration to save.
        use_repo_config: Whether to try saving to the repository config first.

    Returns:
        Path of the written file, or None if nothing could be written.
    """
    config_to_save = {k: v for k, v in config.items() if k in DEFAULT_CONFIG and k not in SECRET_KEYS}

    saved_path = None
    if use_repo_config:
        repo_config_file = REPO_CONFIG_FILES[0]
        try:
            repo_config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(repo_config_file, "w") as f:
                json.dump(config_to_save, f, indent=4)
            saved_path = repo_config_file
            logger.info(f"Client configuration saved to repository: {saved_path}")
        except OSError as e:
            logger.warning(f"Could not save config to repository ({repo_config_file}): {e}. Trying user directory.")

    if not saved_path:
        try:
            USER_CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
            with open(USER_CONFIG_FILE, "w") as f:
                json.dump(config_to_save, f, indent=4)
            saved_path = USER_CONFIG_FILE
            logger.info(f"Client configuration saved to user directory: {saved_path}")
        except OSError as e:
            logger.error(f"Failed to save client configuration to user directory ({USER_CONFIG_FILE}): {e}")

    return saved_path
