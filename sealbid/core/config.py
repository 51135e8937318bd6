"""
Protocol configuration parameters for sealbid.

Defines storage locations, logging options and input limits. Values can be
overridden through environment variables or a .env file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from sealbid.utils.validation import MAX_ID_LENGTH, MAX_ITEM_LENGTH, MAX_PRICE

ENV_PREFIX = "SEALBID_"


@dataclass
class ProtocolConfig:
    """Node-wide configuration parameters"""

    # Storage
    data_dir: Path = Path("data")
    db_name: str = "ledger.db"

    # Logging
    log_dir: Path = Path("logs")
    log_level: int = logging.INFO
    log_to_file: bool = True

    # Input limits
    max_id_length: int = MAX_ID_LENGTH
    max_item_length: int = MAX_ITEM_LENGTH
    max_price: int = MAX_PRICE

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name

    def ensure_dirs(self) -> None:
        """Create the data and log directories"""
        self.data_dir.mkdir(exist_ok=True, parents=True)
        if self.log_to_file:
            self.log_dir.mkdir(exist_ok=True, parents=True)


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config(env_file: Optional[str] = None, **overrides) -> ProtocolConfig:
    """
    Load configuration from the environment.

    A .env file (explicit path, or one found from the working directory) is
    loaded first; variables already set in the process environment win.

    Args:
        env_file: Optional path to a .env file
        **overrides: Field values that take precedence over the environment

    Returns:
        ProtocolConfig instance
    """
    load_dotenv(dotenv_path=env_file, override=False)

    cfg = ProtocolConfig()

    data_dir = os.getenv(ENV_PREFIX + "DATA_DIR")
    if data_dir:
        cfg.data_dir = Path(data_dir).expanduser()
        # Logs follow the data dir unless set explicitly
        cfg.log_dir = cfg.data_dir / "logs"

    log_dir = os.getenv(ENV_PREFIX + "LOG_DIR")
    if log_dir:
        cfg.log_dir = Path(log_dir).expanduser()

    db_name = os.getenv(ENV_PREFIX + "DB_NAME")
    if db_name:
        cfg.db_name = db_name

    level = os.getenv(ENV_PREFIX + "LOG_LEVEL")
    if level:
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level}")
        cfg.log_level = resolved

    to_file = os.getenv(ENV_PREFIX + "LOG_TO_FILE")
    if to_file is not None:
        cfg.log_to_file = _env_flag(to_file)

    for name, value in overrides.items():
        if not hasattr(cfg, name):
            raise ValueError(f"Unknown config field: {name}")
        setattr(cfg, name, value)

    return cfg
