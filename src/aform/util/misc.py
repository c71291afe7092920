"""Generally useful utility functions."""

from __future__ import annotations

import os
import re
import warnings
from collections.abc import Callable, Iterable

_wout_period = re.compile(r"^\.")


def str_to_bool(value: str) -> bool:
    """converts common spellings of true and false"""
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    msg = f"cannot interpret {value!r} as a boolean"
    raise ValueError(msg)


def get_setting_from_environ(
    environ_var: str, params_types: dict[str, Callable]
) -> dict:
    """extract settings from environment variable

    Parameters
    ----------
    environ_var
        name of an environment variable
    params_types
        {param name: type}, values will be cast to type

    Returns
    -------
    dict

    Notes
    -----
    settings must of form 'param_name1=param_val,param_name2=param_val2'.
    Unknown names are ignored, values that cannot be cast are skipped with
    a warning.
    """
    var = os.environ.get(environ_var, None)
    if not var:
        return {}

    result = {}
    for item in var.split(","):
        name, sep, val = item.partition("=")
        name = name.strip()
        if not sep or name not in params_types:
            continue

        try:
            result[name] = params_types[name](val)
        except (TypeError, ValueError):
            warnings.warn(
                f"could not cast {name}={val} to type {params_types[name]}, skipping",
                UserWarning,
                stacklevel=2,
            )

    return result


def unique_everseen(values: Iterable) -> list:
    """returns values in first-seen order with duplicates removed"""
    seen = set()
    result = []
    for value in values:
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
