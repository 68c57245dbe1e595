"""
===============================================================================
SWING-TWIST PROJECT - Verification Test Cases
===============================================================================
Sources of (r, e_q) inputs for the decomposition verification harness:

    - canonical cases that pin down the two special branches and one
      general configuration, grouped the way they are reported;
    - uniformly random rotations paired with uniformly random unit
      directions for the bulk campaign.
===============================================================================
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional

import numpy as np

from core.quaternion import Quaternion

GROUP_ALIGNED = "re_q == e_q"
GROUP_FLIPPED = "re_q == -1 * e_q"
GROUP_RANDOM = "Others"


@dataclass(frozen=True, eq=False)
class TestCase:
    """
    One decomposition input.

    Attributes:
        label: Short human-readable name of the case.
        group: Report group the case belongs to.
        r: Rotation to decompose.
        e_q: Reference direction (3,).
    """
    __test__ = False  # not a pytest class

    label: str
    group: str
    r: Quaternion
    e_q: np.ndarray


def canonical_cases() -> List[TestCase]:
    """
    Fixed cases covering both special branches, in report order.

    The second group mixes the flip case with a 90-degree roll about x
    taken against z, which lands in the general branch.
    """
    x_hat = np.array([1.0, 0.0, 0.0])
    z_hat = np.array([0.0, 0.0, 1.0])
    half_sqrt2 = 1.0 / np.sqrt(2.0)

    return [
        TestCase("identity about x", GROUP_ALIGNED,
                 Quaternion.identity(), x_hat),
        TestCase("180 deg about x, axis x", GROUP_ALIGNED,
                 Quaternion(0.0, 1.0, 0.0, 0.0), x_hat),
        TestCase("180 deg about x, axis z", GROUP_FLIPPED,
                 Quaternion(0.0, 1.0, 0.0, 0.0), z_hat),
        TestCase("90 deg about x, axis z", GROUP_FLIPPED,
                 Quaternion(half_sqrt2, half_sqrt2, 0.0, 0.0), z_hat),
    ]


def random_direction(rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """
    Uniformly distributed unit 3-vector.

    Normalizes an isotropic Gaussian draw; redraws in the (practically
    unreachable) event of a zero-length sample.
    """
    normal = np.random.standard_normal if rng is None else rng.standard_normal
    while True:
        v = normal(3)
        n = np.linalg.norm(v)
        if n > 1e-12:
            return v / n


def random_cases(num_trials: int,
                 rng: Optional[np.random.Generator] = None) -> Iterator[TestCase]:
    """
    Yield num_trials random (r, e_q) pairs in the GROUP_RANDOM group.

    Parameters
    ----------
    num_trials : int
        Number of cases to generate.
    rng : np.random.Generator, optional
        Random source. Defaults to the global numpy state.
    """
    for i in range(num_trials):
        yield TestCase(f"random #{i}", GROUP_RANDOM,
                       Quaternion.random(rng), random_direction(rng))
