import importlib
import importlib.metadata as md
from pathlib import Path
from typing import Any

import yaml


# Clients available from a source checkout, where no entry points are installed.
CHECKOUT_CLIENTS: dict[tuple[str, str], str] = {
    ("archread.clients", "appliance"): "archread.sources.appliance:ArchiverApplianceClient",
}


def _import_target(target: str):
    module_name, _, attr = target.partition(":")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ImportError(f"{target!r} does not name an attribute of {module_name!r}") from exc


def load_ep(group: str, name: str):
    """Resolve ``name`` in entry-point ``group``, then in :data:`CHECKOUT_CLIENTS`."""
    for ep in md.entry_points().select(group=group, name=name):
        return ep.load()
    target = CHECKOUT_CLIENTS.get((group, name))
    if target is not None:
        return _import_target(target)
    known = {ep.name for ep in md.entry_points().select(group=group)}
    known.update(n for g, n in CHECKOUT_CLIENTS if g == group)
    raise ValueError(
        f"unknown archive client {name!r}; available: {', '.join(sorted(known)) or '(none)'}"
    )


def load_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML settings mapping; an empty file is an empty mapping."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"settings file not found: {path}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML in {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"settings file {path} must hold a mapping, got {type(data).__name__}")
    return data
