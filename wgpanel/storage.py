import json
import logging
from pathlib import Path

import yaml

from .errors import PersistenceError, ValidationError
from .models import Dataset

_log = logging.getLogger("wgpanel.storage")


def _read_or_create(path):
    p = Path(path)
    try:
        if not p.exists():
            p.parent.mkdir(parents=True, exist_ok=True)
            p.touch()
            _log.info("created empty %s", p)
        return p.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Could not read {p}: {e}")


def _write(path, text, mode=None):
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")
        if mode is not None:
            p.chmod(mode)
    except OSError as e:
        raise PersistenceError(f"Could not write {p}: {e}")


def read_settings_file(path):
    raw = _read_or_create(path)
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        raise PersistenceError(f"YAML error in {path}: {e}")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PersistenceError(f"{path} must contain a mapping")
    return data


def write_settings_file(path, data):
    try:
        text = yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    except yaml.YAMLError as e:
        raise PersistenceError(f"YAML error: {e}")
    _write(path, text)


def load_dataset(path):
    raw = _read_or_create(path)
    if not raw.strip():
        return Dataset()
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PersistenceError(f"JSON error in {path}: {e}")
    try:
        return Dataset.from_dict(data)
    except ValidationError as e:
        raise PersistenceError(f"Invalid dataset in {path}: {e.message}")


def save_dataset(path, dataset):
    try:
        text = json.dumps(dataset.to_dict(), indent=2)
    except (TypeError, ValueError) as e:
        raise PersistenceError(f"JSON error: {e}")
    _write(path, text, mode=0o600)


def write_wireguard_config(path, text):
    _write(path, text, mode=0o600)
    _log.info("wrote %s (%d bytes)", path, len(text))
