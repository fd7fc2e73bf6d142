"""Shop configuration loaded from YAML with environment overrides."""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_TAX_RATE = 0.15
DEFAULT_REMINDER_DAYS = 90
DEFAULT_VISIT_ID_WIDTH = 5
DEFAULT_SEARCH_LIMIT = 50


class Config:
    """Runtime settings for the shop services."""

    def __init__(
        self,
        data_dir: Union[str, Path] = "data",
        tax_rate: float = DEFAULT_TAX_RATE,
        reminder_threshold_days: int = DEFAULT_REMINDER_DAYS,
        visit_id_width: int = DEFAULT_VISIT_ID_WIDTH,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        log_level: str = "WARNING",
    ):
        self.data_dir = Path(data_dir)
        self.tax_rate = float(tax_rate)
        self.reminder_threshold_days = int(reminder_threshold_days)
        self.visit_id_width = int(visit_id_width)
        self.search_limit = int(search_limit)
        self.log_level = log_level.upper()

    @property
    def tax_label(self) -> str:
        """Invoice label for the configured rate, e.g. 'Tax (15%)'."""
        percent = self.tax_rate * 100
        if percent == int(percent):
            return f"Tax ({int(percent)}%)"
        return f"Tax ({percent:g}%)"


# YAML key -> Config argument
_FILE_KEYS = {
    "dataDir": "data_dir",
    "taxRate": "tax_rate",
    "reminderThresholdDays": "reminder_threshold_days",
    "visitIdWidth": "visit_id_width",
    "searchLimit": "search_limit",
    "logLevel": "log_level",
}

_ENV_KEYS = {
    "GARAGE_DATA_DIR": "data_dir",
    "GARAGE_TAX_RATE": "tax_rate",
    "GARAGE_LOG_LEVEL": "log_level",
}


def load_config(
    path: Optional[Union[str, Path]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> Config:
    """
    Build a Config from an optional YAML file, then environment variables.

    Environment variables win over the file. Unknown file keys are ignored.
    """
    kwargs: Dict[str, Any] = {}

    if path is not None:
        with open(path, "r") as fp:
            data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
        for key, arg in _FILE_KEYS.items():
            if data.get(key) is not None:
                kwargs[arg] = data[key]

    env = os.environ if environ is None else environ
    for key, arg in _ENV_KEYS.items():
        if env.get(key):
            kwargs[arg] = env[key]

    return Config(**kwargs)
