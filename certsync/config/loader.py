"""YAML config loading with env var expansion.

Resolution order: ``--config`` > ``$CERTSYNC_CONFIG`` > ``./certsync.yaml``
> ``~/.certsync/config.yaml`` > built-in defaults. The first file that
exists and is not empty wins; files are never merged.
"""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import CertSyncConfig

ENV_CONFIG_VAR = "CERTSYNC_CONFIG"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def _candidate_paths(cli_path: str | None) -> list[tuple[Path, bool]]:
    """Config locations in priority order, each flagged if it was asked for explicitly."""
    candidates: list[tuple[Path, bool]] = []
    for explicit in (cli_path, os.environ.get(ENV_CONFIG_VAR)):
        if explicit:
            candidates.append((Path(explicit).expanduser(), True))
    candidates.append((Path("certsync.yaml"), False))
    candidates.append((Path.home() / ".certsync" / "config.yaml", False))
    return candidates


def _load_file(path: Path) -> CertSyncConfig | None:
    """Parse one config file; None when it holds no document."""
    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ValueError(f"Cannot read config {path}: {e}") from e
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: expected a mapping at the top level")
    try:
        return CertSyncConfig.model_validate(_expand_env_vars(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e


def load_config(cli_path: str | None = None) -> CertSyncConfig:
    """Resolve and load the effective configuration.

    Raises:
        ValueError: if an explicitly named file is missing, or any loaded
            file is not valid YAML or does not match the config schema.
    """
    for path, explicit in _candidate_paths(cli_path):
        if not path.exists():
            if explicit:
                raise ValueError(f"Config file not found: {path}")
            continue
        config = _load_file(path)
        if config is not None:
            return config
    return CertSyncConfig()


def _expand_env_vars(obj: object) -> object:
    """Replace ${VAR} in every string value; unset variables expand to ''."""
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    if isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `certsync config init`
DEFAULT_CONFIG_TEMPLATE = """\
# certsync.yaml

# Hashed CA directory sync
sync:
  purge: true                  # delete target content not produced by the sync
  strip_headers: false         # strip text around PEM blocks in cacerts.pem
  generate_bundle: true        # build cacerts.pem; false passes through the source's
  labels: "auto"               # auto | selinux | none

# Single-file header stripping (certsync strip)
strip:
  fail_if_missing: true
  # owner: "root"
  # group: "root"
  # mode: "0644"

# Watch mode
watch:
  debounce_seconds: 2.0

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
