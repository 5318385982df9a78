import numpy as np
from typing import Iterable, Optional, Tuple, Union

Point = Tuple[float, float]


def euclidean(a, b):
    """Euclidean distance between points.

    - If `a` and `b` are 1-D points, returns a scalar.
    - If arrays of points, returns distances per-row.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    return np.linalg.norm(a - b, axis=-1)


def clamp(x: float, lo: float, hi: float) -> float:
    return min(max(x, lo), hi)


def lerp(a: Point, b: Point, t: float) -> Point:
    """Linear interpolation between two 2D points at parametric fraction `t`."""
    return (a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t)


def to_target_space(
    norm_xy: Union[Point, np.ndarray], target_size: Tuple[float, float]
) -> np.ndarray:
    """Map normalized coordinates (0..1, origin bottom-left) into a target rectangle.

    The vertical axis is flipped so that normalized y=0 lands on the bottom
    edge of the target space: (x, y) -> (x * width, (1 - y) * height).
    Unlike pixel indexing, the result is left as float and is not clipped.

    Accepts a single point `(x,y)` or an array of points shape `(N,2)`.
    """
    w, h = float(target_size[0]), float(target_size[1])
    arr = np.asarray(norm_xy, dtype=float)

    single = False
    if arr.ndim == 1:
        if arr.size != 2:
            raise ValueError("norm_xy must be shape (2,) or (N,2)")
        arr = arr.reshape((1, 2))
        single = True

    out = np.empty_like(arr)
    out[..., 0] = arr[..., 0] * w
    out[..., 1] = (1.0 - arr[..., 1]) * h
    return out[0] if single else out


class EWMA:
    """Exponential weighted moving average for smoothing scalars or points.

    Written in step form, `value += alpha * (target - value)`, which is the
    same filter as `alpha * x + (1 - alpha) * value`.

    Example:
        s = EWMA(alpha=0.2)
        smoothed = s.update([x, y])
    """

    def __init__(self, alpha: float = 0.2, init: Union[None, float, Iterable] = None) -> None:
        self.alpha = float(alpha)
        self.value: Optional[np.ndarray] = None if init is None else np.array(init, dtype=float)

    def update(self, x: Union[float, Iterable], alpha: Optional[float] = None) -> np.ndarray:
        x = np.array(x, dtype=float)
        a = self.alpha if alpha is None else float(alpha)
        if self.value is None:
            self.value = x
        else:
            self.value = self.value + a * (x - self.value)
        return self.value

    def reset(self, init: Union[None, float, Iterable] = None) -> None:
        self.value = None if init is None else np.array(init, dtype=float)


__all__ = [
    "Point",
    "euclidean",
    "clamp",
    "lerp",
    "to_target_space",
    "EWMA",
]
