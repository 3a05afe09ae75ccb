# -*- coding: utf-8 -*-
"""
Saving and loading parameter snapshots as JSON files.

These are the client-side counterpart of the instrument's own store/load
endpoints: an operator can download the current local parameters to a file
and upload them again later (possibly on another instrument).
"""

import os
from typing import Any

import numpy as np
import simplejson as json
from loguru import logger


class NumpyEncoder(json.JSONEncoder):
    """Special json encoder for numpy types"""

    def default(self, o):
        if isinstance(o, np.integer):
            return int(o)
        if isinstance(o, np.floating):
            return float(o)
        if isinstance(o, np.ndarray):
            return o.tolist()
        return json.JSONEncoder.default(self, o)


def save_params_file(params: dict[str, Any], path: str) -> str:
    """Write a parameter snapshot to `path` as JSON, returns the absolute path."""
    path = os.path.abspath(path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        json.dump(params, f, cls=NumpyEncoder, indent=2, sort_keys=True)
    logger.info("Saved {} parameters to {}", len(params), path)
    return path


def load_params_file(path: str) -> dict[str, Any]:
    """Read a parameter snapshot written by `save_params_file`.

    Raises
    ------
    FileNotFoundError
        If `path` does not exist
    ValueError
        If the file is not valid JSON or does not hold a JSON object
    """
    with open(path, "r") as f:
        params = json.load(f)
    if not isinstance(params, dict):
        raise ValueError(f"Expected a JSON object in {path}, got {type(params)}")
    logger.info("Loaded {} parameters from {}", len(params), path)
    return params
