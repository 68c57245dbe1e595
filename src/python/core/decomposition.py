"""
===============================================================================
SWING-TWIST PROJECT - Rotation Decomposition
===============================================================================

Splits a rotation r into a swing p and a twist q about a reference
direction e_q such that

    r = p * q

The twist q is a pure rotation about e_q (it leaves e_q fixed). The swing p
carries all of the tilt of e_q under r: it is the shortest-arc rotation
taking e_q onto r e_q, so its axis is orthogonal to e_q.

Two configurations have no well-defined shortest arc and are handled
explicitly:

    Case A  r e_q ==  e_q   p = identity, q = r
    Case B  r e_q == -e_q   p = r,        q = identity

Case B attributes the whole rotation to the swing by convention; any swing
about an axis orthogonal to e_q would do.

Preconditions
-------------
e_q must be non-zero and r must be finite. Violating either yields NaN
components in p and q; nothing is raised.
===============================================================================
"""

from enum import Enum
from typing import Sequence, Tuple, Union

import numpy as np

from core.constants import DIRECTION_TOLERANCE
from core.quaternion import Quaternion, is_approx


class DecompositionCase(Enum):
    """Branch taken by decompose_rotation for a given (r, e_q)."""
    ALIGNED = "re_q == e_q"
    FLIPPED = "re_q == -e_q"
    GENERAL = "general"


def _as_rotation(r: Union[Quaternion, Sequence[float]]) -> Quaternion:
    if isinstance(r, Quaternion):
        return r.normalize()
    return Quaternion.from_array(r, normalize=True)


def _as_direction(e_q: Sequence[float]) -> np.ndarray:
    e_q = np.asarray(e_q, dtype=np.float64).reshape(-1)
    if e_q.shape != (3,):
        raise ValueError(f"Direction needs 3 components, got {e_q.shape[0]}")
    with np.errstate(invalid='ignore', divide='ignore'):
        return e_q / np.linalg.norm(e_q)


def _classify(re_q: np.ndarray, e_q: np.ndarray) -> DecompositionCase:
    if is_approx(re_q, e_q, DIRECTION_TOLERANCE):
        return DecompositionCase.ALIGNED
    if is_approx(re_q, -e_q, DIRECTION_TOLERANCE):
        return DecompositionCase.FLIPPED
    return DecompositionCase.GENERAL


def classify_alignment(r: Union[Quaternion, Sequence[float]],
                       e_q: Sequence[float]) -> DecompositionCase:
    """
    Report which branch decompose_rotation takes for (r, e_q).

    Parameters
    ----------
    r : Quaternion or sequence of 4 floats
        Rotation, [w, x, y, z]. Need not be unit length.
    e_q : sequence of 3 floats
        Reference direction. Need not be unit length.

    Returns
    -------
    DecompositionCase
    """
    r = _as_rotation(r)
    e_q = _as_direction(e_q)
    return _classify(r.rotate_vector(e_q), e_q)


def decompose_rotation(r: Union[Quaternion, Sequence[float]],
                       e_q: Sequence[float]) -> Tuple[Quaternion, Quaternion]:
    """
    Decompose r into swing p and twist q about e_q, with r = p * q.

    Parameters
    ----------
    r : Quaternion or sequence of 4 floats
        Rotation to decompose, scalar first. Normalized internally; the
        caller's object is not modified.
    e_q : sequence of 3 floats
        Reference direction. Normalized internally; the caller's array is
        not modified.

    Returns
    -------
    (p, q) : tuple of Quaternion
        p rotates e_q onto r e_q about an axis orthogonal to e_q.
        q rotates about e_q only, so q e_q = e_q.

    Notes
    -----
    In the general case

        e_p     = (e_q x re_q) / |e_q x re_q|
        theta_p = arccos(e_q . re_q)
        p       = [cos(theta_p/2), sin(theta_p/2) * e_p]
        q       = p^* * r

    theta_p is evaluated as atan2(|e_q x re_q|, e_q . re_q), which equals the
    arccosine but keeps full precision when re_q is within ~1e-8 rad of
    +/- e_q, where the dot product rounds to exactly +/- 1. Any rounding
    component of e_p along e_q is projected out so e_p stays orthogonal to
    e_q for tilts just past the direction tolerance.
    """
    r = _as_rotation(r)
    e_q = _as_direction(e_q)

    re_q = r.rotate_vector(e_q)

    case = _classify(re_q, e_q)
    if case is DecompositionCase.ALIGNED:
        return Quaternion.identity(), r
    if case is DecompositionCase.FLIPPED:
        return r, Quaternion.identity()

    cross = np.cross(e_q, re_q)
    theta_p = np.arctan2(np.linalg.norm(cross), np.dot(e_q, re_q))

    e_p = cross / np.linalg.norm(cross)
    e_p = e_p - np.dot(e_p, e_q) * e_q
    p = Quaternion.from_axis_angle(e_p, theta_p)
    q = p.conjugate() * r
    return p, q
