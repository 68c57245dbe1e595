"""
===============================================================================
SWING-TWIST PROJECT - Decomposition Property Checks
===============================================================================
Independent verification of a swing-twist decomposition r = p * q about e_q.

Four properties are checked:

    1. Unit norm        | |p| - 1 | and | |q| - 1 | below tolerance
    2. Reconstruction   p * q equals r up to sign
    3. Fixed axis       q leaves e_q unchanged
    4. Orthogonality    the swing axis e_p is perpendicular to e_q

The fixed-axis check applies q through scipy's Rotation rather than
Quaternion.rotate_vector, so the rotation code under test does not verify
itself.
===============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from core.constants import (
    UNIT_NORM_TOLERANCE, RECONSTRUCTION_TOLERANCE,
    FIXED_AXIS_TOLERANCE, ORTHOGONALITY_TOLERANCE,
)
from core.quaternion import Quaternion


@dataclass
class Tolerances:
    """Thresholds for the four decomposition properties."""
    unit_norm: float = UNIT_NORM_TOLERANCE
    reconstruction: float = RECONSTRUCTION_TOLERANCE
    fixed_axis: float = FIXED_AXIS_TOLERANCE
    orthogonality: float = ORTHOGONALITY_TOLERANCE


@dataclass
class PropertyReport:
    """
    Outcome of checking one decomposition.

    Attributes:
        r, e_q: Inputs as handed to the decomposer.
        p, q: Swing and twist returned by the decomposer.
        theta_p, theta_q: Rotation angles of p and q [rad].
        e_p: Swing axis (zero vector when theta_p is zero).
        norm_error_p, norm_error_q: | |p| - 1 |, | |q| - 1 |.
        reconstruction_error: min(|pq - r|, |pq + r|).
        fixed_axis_error: |q e_q - e_q|.
        orthogonality_error: |e_p . e_q|.
    """
    r: Quaternion
    e_q: np.ndarray
    p: Quaternion
    q: Quaternion
    theta_p: float
    theta_q: float
    e_p: np.ndarray
    norm_error_p: float
    norm_error_q: float
    reconstruction_error: float
    fixed_axis_error: float
    orthogonality_error: float
    tolerances: Tolerances = field(default_factory=Tolerances)

    @property
    def size_p(self) -> bool:
        return bool(self.norm_error_p < self.tolerances.unit_norm)

    @property
    def size_q(self) -> bool:
        return bool(self.norm_error_q < self.tolerances.unit_norm)

    @property
    def is_rpq(self) -> bool:
        return bool(self.reconstruction_error < self.tolerances.reconstruction)

    @property
    def is_fixed(self) -> bool:
        return bool(self.fixed_axis_error < self.tolerances.fixed_axis)

    @property
    def is_vert(self) -> bool:
        return bool(self.orthogonality_error < self.tolerances.orthogonality)

    @property
    def passed(self) -> bool:
        """True when all four properties hold."""
        return (self.size_p and self.size_q and self.is_rpq
                and self.is_fixed and self.is_vert)

    def as_record(self) -> Dict[str, Any]:
        """Flat dict of scalars, one row of the harness results table."""
        return {
            'r_w': self.r.w, 'r_x': self.r.x, 'r_y': self.r.y, 'r_z': self.r.z,
            'e_q_x': float(self.e_q[0]), 'e_q_y': float(self.e_q[1]),
            'e_q_z': float(self.e_q[2]),
            'p_w': self.p.w, 'p_x': self.p.x, 'p_y': self.p.y, 'p_z': self.p.z,
            'q_w': self.q.w, 'q_x': self.q.x, 'q_y': self.q.y, 'q_z': self.q.z,
            'theta_p': self.theta_p,
            'theta_q': self.theta_q,
            'norm_error_p': self.norm_error_p,
            'norm_error_q': self.norm_error_q,
            'reconstruction_error': self.reconstruction_error,
            'fixed_axis_error': self.fixed_axis_error,
            'orthogonality_error': self.orthogonality_error,
            'passed': self.passed,
        }


def _to_scipy(q: Quaternion) -> Rotation:
    # scipy stores quaternions scalar-last
    return Rotation.from_quat([q.x, q.y, q.z, q.w])


def check_decomposition(r: Quaternion, e_q: np.ndarray,
                        p: Quaternion, q: Quaternion,
                        tolerances: Optional[Tolerances] = None) -> PropertyReport:
    """
    Evaluate the four decomposition properties for one (r, e_q) -> (p, q).

    Parameters
    ----------
    r : Quaternion
        Rotation that was decomposed. Normalized here before comparing, the
        way the decomposer treats it.
    e_q : np.ndarray
        Reference direction. Normalized here.
    p, q : Quaternion
        Swing and twist to verify.
    tolerances : Tolerances, optional
        Property thresholds. Defaults to the project constants.

    Returns
    -------
    PropertyReport

    Notes
    -----
    Orthogonality is vacuous when p is the identity: the swing axis is
    undefined and reported as the zero vector, giving a zero dot product.
    """
    tolerances = tolerances or Tolerances()
    r_unit = r.normalize()
    e_q = np.asarray(e_q, dtype=np.float64)
    e_q = e_q / np.linalg.norm(e_q)

    e_p, theta_p = p.to_axis_angle()
    theta_q = q.rotation_angle

    reconstruction_error = (p * q).sign_distance(r_unit)

    if np.all(np.isfinite(q.components)):
        q_e_q = _to_scipy(q).apply(e_q)
    else:
        q_e_q = np.full(3, np.nan)
    fixed_axis_error = float(np.linalg.norm(q_e_q - e_q))

    return PropertyReport(
        r=r, e_q=e_q, p=p, q=q,
        theta_p=theta_p, theta_q=theta_q, e_p=e_p,
        norm_error_p=abs(p.norm - 1.0),
        norm_error_q=abs(q.norm - 1.0),
        reconstruction_error=reconstruction_error,
        fixed_axis_error=fixed_axis_error,
        orthogonality_error=float(abs(np.dot(e_p, e_q))),
        tolerances=tolerances,
    )


def format_report(report: PropertyReport) -> str:
    """
    Render a PropertyReport as an indented text block.

    Flags are printed as 1/0. Example (abridged)::

        decomposition test
          input:
            quaternion r
              w: 1
          ...
          check:
            size of p is 1: 1
    """
    def quat_lines(name, quat, extra=None):
        lines = [f"    quaternion {name}",
                 f"      w: {quat.w:.6g}",
                 f"      x: {quat.x:.6g}",
                 f"      y: {quat.y:.6g}",
                 f"      z: {quat.z:.6g}"]
        if extra is not None:
            lines.append(f"      {extra[0]}: {extra[1]:.6g}")
        return lines

    lines = ["decomposition test", "  input: "]
    lines += quat_lines("r", report.r)
    lines += ["    vector e_q",
              f"      x: {report.e_q[0]:.6g}",
              f"      y: {report.e_q[1]:.6g}",
              f"      z: {report.e_q[2]:.6g}"]
    lines.append("  output: ")
    lines += quat_lines("p", report.p, ("theta_p", report.theta_p))
    lines += quat_lines("q", report.q, ("theta_q", report.theta_q))
    lines += ["  check: ",
              f"    size of p is 1: {int(report.size_p)}",
              f"    size of q is 1: {int(report.size_q)}",
              f"    r = p * q: {int(report.is_rpq)}",
              f"    q fixes e_q: {int(report.is_fixed)}",
              f"    e_p and e_q are vertical: {int(report.is_vert)}"]
    return "\n".join(lines)
