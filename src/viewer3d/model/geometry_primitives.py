"""
Geometric Primitives for scene placement.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Sequence, Union, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    import numpy.typing as npt

AXES = ("x", "y", "z")


@dataclass
class Vector:
    """
    A point or displacement in 3D space, accepted wherever a VectorLike is.
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def to_array(self) -> npt.NDArray[np.float64]:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


# Anything a caller may pass where a point or a displacement is expected.
# Mappings may omit axes, e.g. {"x": 5.0}.
VectorLike = Union[Vector, Sequence[float], Mapping[str, float], "npt.NDArray[np.float64]"]


def _check_axes(value: Mapping[str, float]) -> None:
    unknown = set(value) - set(AXES)
    if unknown:
        raise ValueError(f"Unknown axis name(s): {sorted(unknown)}. Expected a subset of {AXES}.")


def as_point(value: VectorLike) -> npt.NDArray[np.float64]:
    """
    Convert a complete point/vector to a (3,) float array.

    Raises:
        ValueError: If the value does not describe exactly three coordinates.
    """
    if isinstance(value, Vector):
        return value.to_array()
    if isinstance(value, Mapping):
        _check_axes(value)
        missing = [axis for axis in AXES if axis not in value]
        if missing:
            raise ValueError(f"Point is missing coordinate(s): {missing}.")
        return np.array([float(value[axis]) for axis in AXES], dtype=np.float64)

    arr = np.asarray(value, dtype=np.float64).reshape(-1)
    if arr.shape != (3,):
        raise ValueError(f"Expected 3 coordinates, got shape {arr.shape}.")
    return arr.copy()


def as_delta(value: VectorLike) -> npt.NDArray[np.float64]:
    """
    Convert a displacement to a (3,) float array.
    Axes absent from a mapping are treated as zero.
    """
    if isinstance(value, Mapping):
        _check_axes(value)
        return np.array([float(value.get(axis, 0.0)) for axis in AXES], dtype=np.float64)
    return as_point(value)


def resolve_target(current: npt.NDArray[np.float64], target: VectorLike) -> npt.NDArray[np.float64]:
    """
    Resolve a possibly partial target position.
    Axes absent from a mapping keep the current coordinate.
    """
    if isinstance(target, Mapping):
        _check_axes(target)
        return np.array(
            [float(target.get(axis, current[i])) for i, axis in enumerate(AXES)],
            dtype=np.float64
        )
    return as_point(target)


def as_points(values: Sequence[VectorLike]) -> npt.NDArray[np.float64]:
    """
    Convert a polyline definition to an (N, 3) float array with N >= 2.

    Raises:
        ValueError: If fewer than two points are given.
    """
    if len(values) < 2:
        raise ValueError(f"A polyline needs at least 2 points, got {len(values)}.")
    return np.vstack([as_point(v) for v in values])
