import logging
import os

import yaml
from dotenv import load_dotenv

from signal_engine.config import EngineConfig

logger = logging.getLogger("SignalEngine.Config")


def load_config(config_path="config.yaml"):
    """
    Loads configuration from a YAML file.
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        try:
            config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Error parsing config file: {e}")
            raise
    return config or {}


def load_engine_config(config_path="config.yaml", overrides=None) -> EngineConfig:
    """
    Reads the 'engine' section of a YAML config into an EngineConfig,
    then applies dotted overrides such as {"gaps.threshold_percent": 1.0}.
    """
    config = load_config(config_path)
    engine_config = EngineConfig.from_dict(config.get("engine"))
    if overrides:
        engine_config = engine_config.with_overrides(overrides)
    return engine_config


def load_environment(env_path=".env"):
    """
    Loads runtime settings from a .env file (and the process environment).
    """
    load_dotenv(env_path)

    max_workers = os.getenv("SIGNAL_ENGINE_MAX_WORKERS")
    try:
        max_workers = int(max_workers) if max_workers else None
    except ValueError:
        logger.warning(f"Ignoring non-integer SIGNAL_ENGINE_MAX_WORKERS={max_workers!r}")
        max_workers = None

    return {
        "config_path": os.getenv("SIGNAL_ENGINE_CONFIG", "config.yaml"),
        "log_level": os.getenv("SIGNAL_ENGINE_LOG_LEVEL", "INFO"),
        "max_workers": max_workers,
    }
