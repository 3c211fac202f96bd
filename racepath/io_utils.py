"""CSV input and output for tracks, vehicle parameters and results.

Tracks and results are plain column CSV files handled by :mod:`pandas`.
Vehicle parameters are stored one per row as ``name,value`` without a header;
:func:`read_vehicle_params_csv` checks every row and reports the first bad one
as :class:`~racepath.exceptions.InvalidInput`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Collection, Dict, Iterable, Mapping

import pandas as pd

from .exceptions import InvalidInput


def read_track_csv(path: str | Path) -> pd.DataFrame:
    """Read a track CSV, skipping ``#`` comment lines and blanks after commas."""
    try:
        return pd.read_csv(path, comment="#", skipinitialspace=True)
    except pd.errors.EmptyDataError as exc:
        raise InvalidInput(f"track file {path} is empty") from exc


def read_vehicle_params_csv(
    path: str | Path, allowed_keys: Collection[str] | None = None
) -> Dict[str, float]:
    """Read ``name,value`` vehicle parameter rows from ``path``.

    Parameters
    ----------
    path:
        CSV file without header.  Lines starting with ``#`` and blank lines
        are ignored.
    allowed_keys:
        Parameter names accepted in the file.  ``None`` accepts any name.

    Returns
    -------
    Dict[str, float]
        Parameter values by name.

    Raises
    ------
    InvalidInput
        For rows without exactly one numeric value, unknown or repeated
        names, or a file without any parameter.
    """
    try:
        rows = pd.read_csv(
            path, header=None, comment="#", skipinitialspace=True, dtype=str, keep_default_na=False
        )
    except pd.errors.EmptyDataError as exc:
        raise InvalidInput(f"vehicle file {path} holds no parameters") from exc
    except pd.errors.ParserError as exc:
        raise InvalidInput(f"vehicle file {path} is malformed: {exc}") from exc

    if rows.shape[1] != 2:
        raise InvalidInput(f"vehicle file {path} must hold 'name,value' rows")

    params: Dict[str, float] = {}
    rows = rows.fillna("")
    for key, raw_value in zip(rows[0].str.strip(), rows[1].str.strip()):
        if not key or not raw_value:
            raise InvalidInput(f"incomplete vehicle parameter row '{key},{raw_value}'")
        if allowed_keys is not None and key not in allowed_keys:
            raise InvalidInput(f"unknown vehicle parameter '{key}'")
        if key in params:
            raise InvalidInput(f"vehicle parameter '{key}' given twice")
        try:
            params[key] = float(raw_value)
        except ValueError as exc:
            raise InvalidInput(f"vehicle parameter '{key}' is not a number: '{raw_value}'") from exc
    return params


def write_csv(data: Mapping[str, Iterable] | pd.DataFrame, file_path: str | Path) -> Path:
    """Write ``data`` as CSV without index, creating missing directories."""
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    frame = data if isinstance(data, pd.DataFrame) else pd.DataFrame(data)
    frame.to_csv(file_path, index=False)
    return file_path
