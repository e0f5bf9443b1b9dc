"""
Vector and quaternion value types used by the tracking engine.

Both types are immutable. Their components are whatever scalar type the
active precision backend works in: ``float`` for the standard backend,
``decimal.Decimal`` for the high-precision backend. Operations live on the
backends, not here, so the same value type can carry either representation.

Quaternion Convention:
    - Components are stored scalar-last (x, y, z, w), the same order as
      ``scipy.spatial.transform.Rotation.from_quat``
    - (0, 0, 0, 1) is the identity rotation
"""

from dataclasses import dataclass
from decimal import Context, Decimal, localcontext
from typing import Iterable, Iterator, Optional, Union

import numpy as np

Scalar = Union[float, Decimal]


class DegenerateVectorError(ValueError):
    """Raised when a zero-length vector is used where a direction is required."""


@dataclass(frozen=True)
class Vector3:
    """Ordered triple (x, y, z)."""
    x: Scalar
    y: Scalar
    z: Scalar

    @classmethod
    def zero(cls) -> "Vector3":
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def from_iterable(cls, values: Iterable) -> "Vector3":
        """Build a float vector from any 3-element sequence or array."""
        x, y, z = (float(v) for v in values)
        return cls(x, y, z)

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z

    def as_array(self) -> np.ndarray:
        """Return components as a float64 numpy array."""
        return np.array([float(self.x), float(self.y), float(self.z)], dtype=np.float64)

    def to_float(self) -> "Vector3":
        return Vector3(float(self.x), float(self.y), float(self.z))


@dataclass(frozen=True)
class UnitQuaternion:
    """
    Rotation quaternion, scalar-last.

    Instances are produced by the precision backends, which always finish
    with a normalization step, so x² + y² + z² + w² = 1 holds within the
    producing backend's tolerance.
    """
    x: Scalar
    y: Scalar
    z: Scalar
    w: Scalar

    @classmethod
    def identity(cls) -> "UnitQuaternion":
        return cls(0.0, 0.0, 0.0, 1.0)

    def __iter__(self) -> Iterator[Scalar]:
        yield self.x
        yield self.y
        yield self.z
        yield self.w

    def norm_squared(self, context: Optional[Context] = None) -> Scalar:
        """
        Sum of squared components.

        Args:
            context: Decimal context to evaluate in. Without it, Decimal
                components are rounded to the thread's current context
                (28 digits by default).
        """
        with localcontext(context):
            return self.x * self.x + self.y * self.y + self.z * self.z + self.w * self.w

    def as_array(self) -> np.ndarray:
        """Return (x, y, z, w) as a float64 numpy array."""
        return np.array([float(c) for c in self], dtype=np.float64)
