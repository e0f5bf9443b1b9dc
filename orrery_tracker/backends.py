"""
Precision backends for the tracking primitives.

Two interchangeable implementations of the same vector/quaternion contract:

    - StandardBackend: numpy float64 arithmetic
    - HighPrecisionBackend: decimal arithmetic at a fixed number of
      significant digits (100 by default)

The tracking recurrence composes one small rotation per tick, so rounding
error is cumulative over a session. The decimal backend keeps every
intermediate (dot products, square roots, divisions) at working precision;
values become floats again only through ``to_float``.

Rotation Between Two Vectors:
    r = dot(a, b) + 1
    if r < 1e-8 (a and b anti-parallel):
        r = 0, axis = (-a.y, a.x, 0) if |a.x| > |a.z| else (0, -a.z, a.y)
    else:
        axis = cross(a, b)
    q = normalize(axis, r), identity if the 4-vector has zero length

Rotating a Vector:
    t = 2 * cross(q.xyz, v)
    v' = v + q.w * t + cross(q.xyz, t)
"""

from abc import ABC, abstractmethod
from decimal import Context, Decimal, localcontext
from typing import Any, Optional
import logging

import numpy as np

from .config import (
    DEFAULT_PRECISION_DIGITS,
    PrecisionConfigurationError,
    PrecisionMode,
    validate_precision_digits,
)
from .vectors import DegenerateVectorError, Scalar, UnitQuaternion, Vector3

logger = logging.getLogger(__name__)

# Below this, dot(a, b) + 1 is treated as zero and the cross product is not used
ANTIPARALLEL_EPSILON = 1e-8

STANDARD_TOLERANCE = 1e-9


class PrecisionBackend(ABC):
    """
    Arithmetic contract shared by all backends.

    Vectors and quaternions passed in may carry any numeric component type;
    results carry the backend's native scalar type.
    """

    mode: PrecisionMode
    tolerance: Scalar
    digits: Optional[int] = None

    @abstractmethod
    def scalar(self, value: Any) -> Scalar:
        """Convert a number to the native scalar type."""

    def coerce(self, v: Vector3) -> Vector3:
        """Convert a vector to native scalars."""
        return Vector3(self.scalar(v.x), self.scalar(v.y), self.scalar(v.z))

    def to_float(self, v: Vector3) -> Vector3:
        return v.to_float()

    @abstractmethod
    def add(self, a: Vector3, b: Vector3) -> Vector3:
        ...

    @abstractmethod
    def sub(self, a: Vector3, b: Vector3) -> Vector3:
        ...

    @abstractmethod
    def scale(self, v: Vector3, s: Scalar) -> Vector3:
        ...

    @abstractmethod
    def divide(self, a: Scalar, b: Scalar) -> Scalar:
        ...

    @abstractmethod
    def dot(self, a: Vector3, b: Vector3) -> Scalar:
        ...

    @abstractmethod
    def cross(self, a: Vector3, b: Vector3) -> Vector3:
        ...

    @abstractmethod
    def length(self, v: Vector3) -> Scalar:
        ...

    def normalize(self, v: Vector3) -> Vector3:
        """
        Return v / |v|.

        Raises:
            DegenerateVectorError: if |v| is zero
        """
        n = self.length(v)
        if n == 0:
            raise DegenerateVectorError(f"Cannot normalize zero-length vector {v}")
        return self.scale(v, self.divide(self.scalar(1), n))

    @abstractmethod
    def rotation_between(self, a: Vector3, b: Vector3) -> UnitQuaternion:
        """
        Shortest-arc rotation carrying direction a onto direction b.

        Both inputs are normalized first, so a zero-length input raises
        DegenerateVectorError.
        """

    @abstractmethod
    def apply_rotation(self, v: Vector3, q: UnitQuaternion) -> Vector3:
        """Rotate v by unit quaternion q."""

    def is_unit(self, q: UnitQuaternion) -> bool:
        """Check the unit-norm invariant within this backend's tolerance."""
        q = UnitQuaternion(*(self.scalar(c) for c in q))
        return abs(q.norm_squared() - self.scalar(1)) <= self.scalar(self.tolerance)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class StandardBackend(PrecisionBackend):
    """Machine-precision backend built on numpy float64."""

    mode = PrecisionMode.STANDARD
    tolerance = STANDARD_TOLERANCE

    @staticmethod
    def _vec(arr: np.ndarray) -> Vector3:
        return Vector3(float(arr[0]), float(arr[1]), float(arr[2]))

    def scalar(self, value: Any) -> float:
        return float(value)

    def add(self, a: Vector3, b: Vector3) -> Vector3:
        return self._vec(a.as_array() + b.as_array())

    def sub(self, a: Vector3, b: Vector3) -> Vector3:
        return self._vec(a.as_array() - b.as_array())

    def scale(self, v: Vector3, s: Scalar) -> Vector3:
        return self._vec(v.as_array() * float(s))

    def divide(self, a: Scalar, b: Scalar) -> float:
        return float(a) / float(b)

    def dot(self, a: Vector3, b: Vector3) -> float:
        return float(np.dot(a.as_array(), b.as_array()))

    def cross(self, a: Vector3, b: Vector3) -> Vector3:
        return self._vec(np.cross(a.as_array(), b.as_array()))

    def length(self, v: Vector3) -> float:
        return float(np.linalg.norm(v.as_array()))

    def rotation_between(self, a: Vector3, b: Vector3) -> UnitQuaternion:
        a_hat = self.normalize(a).as_array()
        b_hat = self.normalize(b).as_array()

        r = float(np.dot(a_hat, b_hat)) + 1.0
        if r < ANTIPARALLEL_EPSILON:
            r = 0.0
            if abs(a_hat[0]) > abs(a_hat[2]):
                xyz = np.array([-a_hat[1], a_hat[0], 0.0])
            else:
                xyz = np.array([0.0, -a_hat[2], a_hat[1]])
        else:
            xyz = np.cross(a_hat, b_hat)

        quat = np.append(xyz, r)
        norm = np.linalg.norm(quat)
        if norm == 0:
            return UnitQuaternion.identity()
        quat = quat / norm
        return UnitQuaternion(*(float(c) for c in quat))

    def apply_rotation(self, v: Vector3, q: UnitQuaternion) -> Vector3:
        u = np.array([float(q.x), float(q.y), float(q.z)])
        v_arr = v.as_array()
        t = 2.0 * np.cross(u, v_arr)
        return self._vec(v_arr + float(q.w) * t + np.cross(u, t))


class HighPrecisionBackend(PrecisionBackend):
    """
    Arbitrary-precision backend built on ``decimal``.

    All arithmetic runs inside a private decimal context so the process-wide
    context is never modified.
    """

    mode = PrecisionMode.HIGH_PRECISION

    def __init__(self, digits: int = DEFAULT_PRECISION_DIGITS):
        self.digits = validate_precision_digits(digits)
        self._context = Context(prec=self.digits)
        self._zero = Decimal(0)
        self._one = Decimal(1)
        self._two = Decimal(2)
        self._epsilon = Decimal(str(ANTIPARALLEL_EPSILON))
        # A few guard digits are lost to rounding across a rotation.
        # Kept as a Decimal: past ~320 digits it underflows a double.
        self.tolerance = Decimal(10) ** -(self.digits - 5)
        logger.debug(f"High-precision backend at {self.digits} significant digits")

    def scalar(self, value: Any) -> Decimal:
        if isinstance(value, Decimal):
            return value
        # Decimal(float) is exact; the context rounds at the first operation
        return Decimal(value)

    def add(self, a: Vector3, b: Vector3) -> Vector3:
        a, b = self.coerce(a), self.coerce(b)
        with localcontext(self._context):
            return Vector3(a.x + b.x, a.y + b.y, a.z + b.z)

    def sub(self, a: Vector3, b: Vector3) -> Vector3:
        a, b = self.coerce(a), self.coerce(b)
        with localcontext(self._context):
            return Vector3(a.x - b.x, a.y - b.y, a.z - b.z)

    def scale(self, v: Vector3, s: Scalar) -> Vector3:
        v, s = self.coerce(v), self.scalar(s)
        with localcontext(self._context):
            return Vector3(v.x * s, v.y * s, v.z * s)

    def divide(self, a: Scalar, b: Scalar) -> Decimal:
        with localcontext(self._context):
            return self.scalar(a) / self.scalar(b)

    def dot(self, a: Vector3, b: Vector3) -> Decimal:
        a, b = self.coerce(a), self.coerce(b)
        with localcontext(self._context):
            return a.x * b.x + a.y * b.y + a.z * b.z

    def cross(self, a: Vector3, b: Vector3) -> Vector3:
        a, b = self.coerce(a), self.coerce(b)
        with localcontext(self._context):
            return Vector3(
                a.y * b.z - a.z * b.y,
                a.z * b.x - a.x * b.z,
                a.x * b.y - a.y * b.x,
            )

    def length(self, v: Vector3) -> Decimal:
        with localcontext(self._context):
            return self.dot(v, v).sqrt()

    def rotation_between(self, a: Vector3, b: Vector3) -> UnitQuaternion:
        a_hat = self.normalize(a)
        b_hat = self.normalize(b)

        with localcontext(self._context):
            r = self.dot(a_hat, b_hat) + self._one
            if r < self._epsilon:
                r = self._zero
                if abs(a_hat.x) > abs(a_hat.z):
                    x, y, z = -a_hat.y, a_hat.x, self._zero
                else:
                    x, y, z = self._zero, -a_hat.z, a_hat.y
            else:
                x, y, z = self.cross(a_hat, b_hat)

            norm = (x * x + y * y + z * z + r * r).sqrt()
            if norm == 0:
                return UnitQuaternion(self._zero, self._zero, self._zero, self._one)
            return UnitQuaternion(x / norm, y / norm, z / norm, r / norm)

    def apply_rotation(self, v: Vector3, q: UnitQuaternion) -> Vector3:
        v = self.coerce(v)
        u = Vector3(self.scalar(q.x), self.scalar(q.y), self.scalar(q.z))
        w = self.scalar(q.w)

        with localcontext(self._context):
            t = self.scale(self.cross(u, v), self._two)
            return self.add(self.add(v, self.scale(t, w)), self.cross(u, t))

    @property
    def context(self) -> Context:
        return self._context

    def is_unit(self, q: UnitQuaternion) -> bool:
        q = UnitQuaternion(*(self.scalar(c) for c in q))
        with localcontext(self._context):
            return abs(q.norm_squared(self._context) - self._one) <= self.tolerance

    def __repr__(self) -> str:
        return f"HighPrecisionBackend(digits={self.digits})"


def create_backend(
    mode: Any = PrecisionMode.STANDARD,
    digits: int = DEFAULT_PRECISION_DIGITS,
) -> PrecisionBackend:
    """
    Build the backend for a precision mode.

    Args:
        mode: PrecisionMode or its name
        digits: Significant digits for the high-precision backend

    Raises:
        PrecisionConfigurationError: unknown mode or too few digits
    """
    mode = PrecisionMode.parse(mode)
    if mode is PrecisionMode.HIGH_PRECISION:
        return HighPrecisionBackend(digits)
    if mode is PrecisionMode.STANDARD:
        return StandardBackend()
    raise PrecisionConfigurationError(f"Unsupported precision mode: {mode}")
