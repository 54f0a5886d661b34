# -*- coding: utf-8 -*-
"""
Created on Thu Oct  8 16:40:58 2026

@author: p-sik

TOML configuration for stack reconstruction.

A configuration file may sit next to the ``.ser`` file with the same stem
(``series_1.ser`` -> ``series_1.toml``) or be passed explicitly::

    [selection]
    start = 1
    end = -1
    increment = 2

    [reader]
    n_workers = 4
    load_data = true
    progress = true
    verbose = 1

    [export]
    h5file = "series_1.h5"
"""
import copy
import os

# Import tomlib packages
try:
    import tomllib
    def _read_toml(path):
        with open(path, "rb") as f:
            return tomllib.load(f)
except ImportError:
    import toml
    def _read_toml(path):
        return toml.load(path)


DEFAULT_CONFIG = {
    "selection": {
        "start": None,
        "end": None,
        "increment": None,
    },
    "reader": {
        "n_workers": 1,
        "load_data": True,
        "progress": False,
        "verbose": 1,
    },
    "export": {
        "h5file": None,
    },
}


def sidecar_path(ser_path):
    """Path of the TOML sidecar belonging to ``ser_path``."""
    stem, _ = os.path.splitext(os.fspath(ser_path))
    return stem + ".toml"


def load_config(path=None, ser_path=None):
    """
    Load a configuration merged over ``DEFAULT_CONFIG``.

    Parameters
    ----------
    path : str or None
        Explicit TOML file. Must exist if given.
    ser_path : str or None
        If ``path`` is None, the sidecar of this SER file is used when it
        exists.

    Returns
    -------
    dict
        Nested dict with the sections ``selection``, ``reader``, ``export``.

    Raises
    ------
    FileNotFoundError
        If an explicit ``path`` does not exist.
    ValueError
        On unknown sections or keys.
    """
    cfg = copy.deepcopy(DEFAULT_CONFIG)

    if path is None and ser_path is not None:
        candidate = sidecar_path(ser_path)
        if os.path.isfile(candidate):
            path = candidate
    if path is None:
        return cfg

    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = _read_toml(path)
    for section, values in raw.items():
        if section not in cfg:
            raise ValueError(f"Unknown config section [{section}] in {path}")
        if not isinstance(values, dict):
            raise ValueError(f"Config section [{section}] must be a table.")
        for key, value in values.items():
            if key not in cfg[section]:
                raise ValueError(
                    f"Unknown config key '{key}' in section [{section}].")
            cfg[section][key] = value
    return cfg


def merge_overrides(cfg, **overrides):
    """
    Return a copy of ``cfg`` with non-None keyword overrides applied.

    Keys are looked up in every section, e.g. ``start=3`` sets
    ``cfg["selection"]["start"]``.
    """
    out = copy.deepcopy(cfg)
    for key, value in overrides.items():
        if value is None:
            continue
        for section in out.values():
            if key in section:
                section[key] = value
                break
        else:
            raise ValueError(f"Unknown config key '{key}'.")
    return out
