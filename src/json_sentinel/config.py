import json
from pathlib import Path


DEFAULT_CONFIG = {
    # structure
    "max_depth": 20,
    "max_keys": 1000,
    "max_size_bytes": 1024 * 1024,  # 1 MiB
    # data quality
    "email_key_hints": ["email"],
    "url_key_hints": ["url", "link", "website"],
    "date_key_hints": ["date", "time"],
    "date_formats": ["%Y-%m-%d", "%m/%d/%Y", "%d %B %Y", "%B %d, %Y", "%d %b %Y", "%b %d, %Y"],
    "age_key_hints": ["age"],
    "age_range": [0, 120],
    "year_key_hints": ["year"],
    "year_min": 1900,
    "year_future_window": 10,
    "current_year": None,  # None means "this year"
    "percent_key_hints": ["percent", "rate"],
    "percent_range": [0, 100],
    "max_string_length": 10000,
    "anomaly_sample_size": 5,
    # security
    "security_rules": ["insecure_url", "embedded_jwt"],
    # remote repair collaborator
    "repair_endpoint": None,
    "repair_api_key": None,
    "repair_timeout_seconds": 30.0,
    "repair_rate_limit": 5,
    "repair_rate_window_seconds": 60.0,
    # analyzer
    "cache_size": 0,
}


def load_config(path):
    """
    Load JSON config file and override DEFAULT_CONFIG.
    If no path is given, just return the defaults.
    """
    config = DEFAULT_CONFIG.copy()

    if path is None:
        return config

    cfg_path = Path(path)

    if not cfg_path.is_file():
        raise FileNotFoundError("Config file not found: {}".format(cfg_path))

    with cfg_path.open("r", encoding="utf-8") as f:
        user_cfg = json.load(f)

    if not isinstance(user_cfg, dict):
        raise ValueError("Config file must contain a JSON object at the root")

    for key, value in user_cfg.items():
        if key not in DEFAULT_CONFIG:
            raise ValueError("Unknown config key: {}".format(key))
        config[key] = value

    return config


def merge_config(overrides=None):
    """Return DEFAULT_CONFIG updated with ``overrides`` (a dict or None)."""
    config = DEFAULT_CONFIG.copy()
    if overrides:
        config.update(overrides)
    return config
