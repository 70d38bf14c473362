from pathlib import Path
import json
import os
import sys

CONFIG_FILE = Path(__file__).parent / ".zap_config.json"

DEFAULT_BAUDRATE = 115200
DEFAULT_TIMEOUT = 0.5   # Seconds to wait for each byte from the board
DEFAULT_CHUNK_SIZE = 256  # Raw bytes per get/put round trip

# setting name -> (environment variable, type, default)
SETTINGS = {
    "device": ("PYBOARD_DEVICE", str, None),
    "baudrate": ("PYBOARD_BAUDRATE", int, DEFAULT_BAUDRATE),
    "timeout": ("PYBOARD_TIMEOUT", float, DEFAULT_TIMEOUT),
    "chunk_size": ("PYBOARD_CHUNK_SIZE", int, DEFAULT_CHUNK_SIZE),
}


def load_config(config_file=None):
    config_file = Path(config_file or CONFIG_FILE)
    if config_file.exists():
        try:
            return json.loads(config_file.read_text())
        except json.JSONDecodeError:
            print(f"Warning: Config file {config_file} is corrupted. Using defaults.", file=sys.stderr)
    return {}


def save_config(cfg, config_file=None):
    config_file = Path(config_file or CONFIG_FILE)
    try:
        config_file.write_text(json.dumps(cfg, indent=2))
    except IOError as e:
        print(f"Error saving config file {config_file}: {e}", file=sys.stderr)


def resolve_settings(overrides=None, environ=None, cfg=None):
    """Merge settings: explicit overrides, then environment, then saved config, then defaults.

    A None value in overrides means "not given on the command line".
    """
    overrides = overrides or {}
    environ = os.environ if environ is None else environ
    cfg = load_config() if cfg is None else cfg

    settings = {}
    for name, (env_var, cast, default) in SETTINGS.items():
        value = overrides.get(name)
        if value is None and environ.get(env_var):
            try:
                value = cast(environ[env_var])
            except ValueError:
                raise ValueError(f"Invalid value for {env_var}: {environ[env_var]!r}") from None
        if value is None and cfg.get(name) is not None:
            value = cast(cfg[name])
        if value is None:
            value = default
        settings[name] = value

    if settings["chunk_size"] <= 0:
        raise ValueError(f"Chunk size must be positive, got {settings['chunk_size']}")
    if settings["timeout"] <= 0:
        raise ValueError(f"Timeout must be positive, got {settings['timeout']}")
    return settings
