import functools
import json
import pickle
import time
from typing import Callable, Any
from pathlib import PosixPath

import numpy as np
import yaml


def total_time(obj: Any) -> float:
    """Return _total_time of the object, 0 if no timed method has run."""
    return getattr(obj, "_total_time", 0.0)


def timing_decorator(method: Callable[..., Any]):
    """Decorator for getting total time spent in a method, kept per instance."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        start_time = time.perf_counter()
        result = method(self, *args, **kwargs)
        self._total_time = total_time(self) + time.perf_counter() - start_time
        return result

    return wrapper


def convert_numpy_objects(obj):
    """Convert numpy objects to Python-native types so that they
    are JSON serializable
    """
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, PosixPath):
        return str(obj)
    elif isinstance(obj, dict):
        return {k: convert_numpy_objects(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_numpy_objects(i) for i in obj]
    else:
        return obj


def write_pickle(data: Any, file: str) -> None:
    with open(file, "wb") as f:
        pickle.dump(data, f)


def read_pickle(file: str) -> Any:
    with open(file, "rb") as f:
        return pickle.load(f)


def write_json(data: dict, file: str) -> None:
    data_converted = convert_numpy_objects(data)
    with open(file, "w") as f:
        json.dump(data_converted, f)


def read_json(file: str) -> dict:
    with open(file, "r") as f:
        return json.load(f)


def write_yaml(data: dict, file: str) -> None:
    data_converted = convert_numpy_objects(data)
    with open(file, "w") as f:
        return yaml.dump(data_converted, f)


def read_yaml(file) -> dict:
    with open(file, "r") as f:
        return yaml.safe_load(f)


def read_parameter_file(file) -> dict:
    """Read a parameter file, dispatching on its suffix (.json, .yaml, .yml)."""
    suffix = str(file).rsplit(".", 1)[-1].lower()
    if suffix == "json":
        return read_json(file)
    elif suffix in ("yaml", "yml"):
        return read_yaml(file) or {}
    raise ValueError(f"Unsupported parameter file format: {file}")


def langmuir(x: float) -> float:
    """Langmuir occupancy x / (1 + x)."""
    return x / (1.0 + x)


def equilibrium_constant(affinity: float) -> float:
    """Equilibrium association constant K = exp(affinity), affinity in kT."""
    return float(np.exp(affinity))


def accept(rng: np.random.Generator, prob: float) -> bool:
    """Bernoulli trial with success probability prob."""
    return rng.random() < prob


def discretize(rng: np.random.Generator, x: float) -> int:
    """Stochastically round x to an integer with expectation x.

    The integer part is always kept and the fractional part is added as
    one extra unit with probability equal to its size.
    """
    base = int(np.floor(x))
    return base + int(accept(rng, x - base))
