"""
===============================================================================
SWING-TWIST PROJECT - Quaternion Value Type
===============================================================================

Unit quaternion used to represent the rotations fed into and produced by the
swing-twist decomposition. Only the operations the decomposition and its
verification need are provided: composition, conjugation, vector rotation,
axis-angle conversion and uniform random sampling.

Convention
----------
Scalar-first:

    q = [q_w, q_x, q_y, q_z] = q_w + q_x*i + q_y*j + q_z*k

A vector is rotated with the sandwich product

    v' = q * v * q_conjugate

where v is embedded as a pure quaternion (v_w = 0). The product p * q
applies q first and p second.

References
----------
    [1] Markley & Crassidis, "Fundamentals of Spacecraft Attitude
        Determination and Control", Springer, 2014.
    [2] Shoemake, "Uniform Random Rotations", Graphics Gems III, 1992.

===============================================================================
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from core.constants import ZERO_NORM_TOLERANCE


def is_approx(a: np.ndarray, b: np.ndarray, precision: float) -> bool:
    """
    Relative fuzzy comparison of two arrays.

    True when |a - b| <= precision * min(|a|, |b|). Two zero arrays only
    compare equal to each other, so comparing against the zero vector is
    effectively exact; use an absolute test for that instead.

    Parameters
    ----------
    a, b : np.ndarray
        Arrays of identical shape.
    precision : float
        Relative tolerance.

    Returns
    -------
    bool
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    diff = np.linalg.norm(a - b)
    return bool(diff <= precision * min(np.linalg.norm(a), np.linalg.norm(b)))


class Quaternion:
    """
    Unit quaternion for 3D rotation representation.

    A unit quaternion q = [w, x, y, z] parameterizes a rotation by angle theta
    about unit axis n as:

        q = [cos(theta/2), sin(theta/2) * n_x, sin(theta/2) * n_y, sin(theta/2) * n_z]

    Attributes
    ----------
    w : float
        Scalar (real) component.
    x, y, z : float
        Imaginary components.

    Examples
    --------
    >>> q = Quaternion.from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)
    >>> q.rotate_vector(np.array([1.0, 0.0, 0.0]))   # ~[0, 1, 0]
    """

    _NORM_TOLERANCE = 1e-10
    _COMPARISON_TOLERANCE = 1e-9

    def __init__(self, w: float, x: float, y: float, z: float,
                 normalize: bool = True) -> None:
        """
        Initialize a quaternion with scalar-first convention.

        Parameters
        ----------
        w, x, y, z : float
            Components, scalar first.
        normalize : bool, optional
            If True (default), scale to unit magnitude and flip the sign so
            that w >= 0. Pass False to keep the components exactly as given,
            e.g. to hand an unnormalized rotation to the decomposer.

        Notes
        -----
        q and -q represent the same rotation; normalized quaternions always
        carry the w >= 0 representative.
        """
        self._q = np.array([w, x, y, z], dtype=np.float64)

        if normalize:
            self._normalize_in_place()

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def w(self) -> float:
        """Scalar (real) part of the quaternion."""
        return float(self._q[0])

    @property
    def x(self) -> float:
        return float(self._q[1])

    @property
    def y(self) -> float:
        return float(self._q[2])

    @property
    def z(self) -> float:
        return float(self._q[3])

    @property
    def vector(self) -> np.ndarray:
        """Vector (imaginary) part [x, y, z] as a new array."""
        return self._q[1:4].copy()

    @property
    def components(self) -> np.ndarray:
        """Full quaternion [w, x, y, z] as a new array."""
        return self._q.copy()

    @property
    def norm(self) -> float:
        """Euclidean norm sqrt(w^2 + x^2 + y^2 + z^2)."""
        return float(np.linalg.norm(self._q))

    @property
    def rotation_angle(self) -> float:
        """
        Total rotation angle in radians [0, pi].

        theta = 2 * arccos(|w|), with the argument clamped so that a norm
        a few ulps above one does not produce NaN.
        """
        return float(2.0 * np.arccos(np.clip(abs(self.w), -1.0, 1.0)))

    @property
    def rotation_axis(self) -> np.ndarray:
        """
        Unit rotation axis, vector / |vector|.

        Returns the zero vector when the rotation angle is zero, since the
        axis is undefined there. The sign follows the stored representative
        (w >= 0 after normalization), so the axis and rotation_angle
        together always describe the same rotation.
        """
        vec = self.vector
        vec_norm = np.linalg.norm(vec)

        if vec_norm < self._NORM_TOLERANCE:
            return np.zeros(3)

        if self._q[0] < 0.0:
            vec = -vec
        return vec / vec_norm

    # =========================================================================
    # INTERNAL HELPERS
    # =========================================================================

    def _normalize_in_place(self) -> None:
        """
        Normalize the quaternion to unit magnitude in-place.

        Non-finite components pass through as NaN rather than raising; only
        a finite near-zero norm is rejected.

        Raises
        ------
        ValueError
            If the quaternion has near-zero norm.
        """
        n = np.linalg.norm(self._q)

        if n < self._NORM_TOLERANCE:
            raise ValueError(
                f"Cannot normalize near-zero quaternion (norm = {n:.2e}). "
                "A zero quaternion does not represent a rotation."
            )

        self._q /= n

        # q and -q are the same rotation; keep the w >= 0 representative
        if self._q[0] < 0.0:
            self._q = -self._q

    # =========================================================================
    # FACTORY METHODS
    # =========================================================================

    @staticmethod
    def identity() -> 'Quaternion':
        """Identity quaternion [1, 0, 0, 0] (zero rotation)."""
        return Quaternion(1.0, 0.0, 0.0, 0.0, normalize=False)

    @staticmethod
    def from_array(components: Sequence[float],
                   normalize: bool = True) -> 'Quaternion':
        """
        Build a quaternion from a 4-sequence [w, x, y, z].

        Raises
        ------
        ValueError
            If the sequence does not hold exactly four components.
        """
        arr = np.asarray(components, dtype=np.float64).reshape(-1)
        if arr.shape != (4,):
            raise ValueError(
                f"Quaternion needs 4 components (w, x, y, z), got {arr.shape[0]}"
            )
        return Quaternion(arr[0], arr[1], arr[2], arr[3], normalize=normalize)

    @staticmethod
    def from_axis_angle(axis: np.ndarray, angle: float) -> 'Quaternion':
        """
        Create a quaternion from an axis-angle representation.

            q = [cos(theta/2), sin(theta/2) * n]

        Parameters
        ----------
        axis : np.ndarray
            3-element rotation axis. Normalized internally.
        angle : float
            Rotation angle in radians.

        Raises
        ------
        ValueError
            If axis has near-zero magnitude.
        """
        axis = np.asarray(axis, dtype=np.float64)
        axis_norm = np.linalg.norm(axis)

        if axis_norm < ZERO_NORM_TOLERANCE:
            raise ValueError(
                "Rotation axis has near-zero magnitude. "
                "Cannot define a rotation about a zero vector."
            )

        n = axis / axis_norm
        half_angle = angle / 2.0
        sin_half = np.sin(half_angle)

        return Quaternion(np.cos(half_angle),
                          sin_half * n[0], sin_half * n[1], sin_half * n[2])

    @staticmethod
    def random(rng: Optional[np.random.Generator] = None) -> 'Quaternion':
        """
        Generate a uniformly random unit quaternion.

        Uses Shoemake's subgroup algorithm so that the rotations are uniform
        over SO(3). Normalizing a random 4-vector drawn from a cube does NOT
        give a uniform distribution.

        Parameters
        ----------
        rng : np.random.Generator, optional
            Source of randomness. Falls back to the global numpy state so
            that np.random.seed() keeps runs reproducible.
        """
        if rng is None:
            u1, u2, u3 = np.random.random(3)
        else:
            u1, u2, u3 = rng.random(3)

        sqrt_u1 = np.sqrt(u1)
        sqrt_1_minus_u1 = np.sqrt(1.0 - u1)

        w = sqrt_1_minus_u1 * np.sin(2.0 * np.pi * u2)
        x = sqrt_1_minus_u1 * np.cos(2.0 * np.pi * u2)
        y = sqrt_u1 * np.sin(2.0 * np.pi * u3)
        z = sqrt_u1 * np.cos(2.0 * np.pi * u3)

        return Quaternion(w, x, y, z)

    # =========================================================================
    # QUATERNION ARITHMETIC
    # =========================================================================

    def conjugate(self) -> 'Quaternion':
        """
        Return the conjugate [w, -x, -y, -z].

        For unit quaternions this is the inverse rotation.
        """
        return Quaternion(self.w, -self.x, -self.y, -self.z, normalize=False)

    def normalize(self) -> 'Quaternion':
        """Return a new unit-magnitude quaternion (w >= 0)."""
        return Quaternion(self.w, self.x, self.y, self.z, normalize=True)

    def multiply(self, other: 'Quaternion') -> 'Quaternion':
        """
        Hamilton product self * other.

        The product rotates a vector first by 'other' and then by 'self'.

            (a1 + b1*i + c1*j + d1*k) * (a2 + b2*i + c2*j + d2*k) =

            (a1*a2 - b1*b2 - c1*c2 - d1*d2) +
            (a1*b2 + b1*a2 + c1*d2 - d1*c2) i +
            (a1*c2 - b1*d2 + c1*a2 + d1*b2) j +
            (a1*d2 + b1*c2 - c1*b2 + d1*a2) k

        The result is renormalized, so it is the w >= 0 representative.
        """
        a1, b1, c1, d1 = self.w, self.x, self.y, self.z
        a2, b2, c2, d2 = other.w, other.x, other.y, other.z

        w = a1 * a2 - b1 * b2 - c1 * c2 - d1 * d2
        x = a1 * b2 + b1 * a2 + c1 * d2 - d1 * c2
        y = a1 * c2 - b1 * d2 + c1 * a2 + d1 * b2
        z = a1 * d2 + b1 * c2 - c1 * b2 + d1 * a2

        return Quaternion(w, x, y, z)

    # =========================================================================
    # ROTATION OPERATIONS
    # =========================================================================

    def rotate_vector(self, v: np.ndarray) -> np.ndarray:
        """
        Rotate a 3D vector by this quaternion.

        Uses the Rodrigues form of the sandwich product:

            t  = 2 * (u x v)
            v' = v + w * t + u x t

        where u is the vector part of q (Markley & Crassidis, Eq. 2.89).
        """
        v = np.asarray(v, dtype=np.float64)
        u = self.vector

        t = 2.0 * np.cross(u, v)
        return v + self.w * t + np.cross(u, t)

    def to_axis_angle(self) -> Tuple[np.ndarray, float]:
        """
        Convert to (axis, angle) with angle in [0, pi].

        For the identity rotation the axis is the zero vector.
        """
        return (self.rotation_axis, self.rotation_angle)

    # =========================================================================
    # OPERATOR OVERLOADS
    # =========================================================================

    def __mul__(self, other: 'Quaternion') -> 'Quaternion':
        if isinstance(other, Quaternion):
            return self.multiply(other)
        return NotImplemented

    def __neg__(self) -> 'Quaternion':
        """Negate all components. -q is the same rotation as q."""
        return Quaternion(-self.w, -self.x, -self.y, -self.z, normalize=False)

    def __eq__(self, other: object) -> bool:
        """
        Equality with tolerance, accounting for the q / -q ambiguity.
        """
        if not isinstance(other, Quaternion):
            return NotImplemented
        return self.is_approx(other, self._COMPARISON_TOLERANCE)

    __hash__ = None

    def __repr__(self) -> str:
        return (f"Quaternion(w={self.w:+.8f}, x={self.x:+.8f}, "
                f"y={self.y:+.8f}, z={self.z:+.8f})")

    def __str__(self) -> str:
        angle_deg = np.degrees(self.rotation_angle)
        return (f"[{self.w:+.6f}, {self.x:+.6f}, {self.y:+.6f}, "
                f"{self.z:+.6f}] (rot={angle_deg:.2f} deg)")

    # =========================================================================
    # UTILITY METHODS
    # =========================================================================

    def is_unit(self, tolerance: float = 1e-10) -> bool:
        """True if |q| is within tolerance of 1.0."""
        return abs(self.norm - 1.0) < tolerance

    def sign_distance(self, other: 'Quaternion') -> float:
        """
        Smallest component distance to other, over both signs of other.

            min(|self - other|, |self + other|)
        """
        diff_pos = np.linalg.norm(self._q - other._q)
        diff_neg = np.linalg.norm(self._q + other._q)
        return float(min(diff_pos, diff_neg))

    def is_approx(self, other: 'Quaternion', tolerance: float = 1e-9) -> bool:
        """True if both quaternions describe the same rotation within tolerance."""
        return self.sign_distance(other) < tolerance
