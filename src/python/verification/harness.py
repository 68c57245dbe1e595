"""
===============================================================================
SWING-TWIST PROJECT - Verification Harness
===============================================================================
Drives decompose_rotation over the canonical cases and a random campaign,
checks every trial with verification.checks, and aggregates the outcome.

Trials are organised in groups. Each group prints "Good." when all of its
trials pass and "Something wrong." otherwise; with stop_on_failure the run
ends at the first failing group. Every trial, passing or not, is recorded
as one row of a pandas DataFrame for later statistics or CSV export.
===============================================================================
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from core.constants import DEFAULT_RANDOM_TRIALS, DEFAULT_SEED
from core.decomposition import classify_alignment, decompose_rotation
from core.quaternion import Quaternion
from verification.cases import (
    GROUP_RANDOM, TestCase, canonical_cases, random_cases,
)
from verification.checks import (
    PropertyReport, Tolerances, check_decomposition, format_report,
)

logger = logging.getLogger(__name__)

Decomposer = Callable[[Quaternion, np.ndarray], Tuple[Quaternion, Quaternion]]


@dataclass
class VerificationConfig:
    """
    Settings for one verification run.

    Attributes:
        num_trials: Number of random trials after the canonical cases.
        seed: Seed of the random campaign's generator.
        stop_on_failure: End the run at the first failing group.
        verbose: Print the full per-trial report block.
        tolerances: Property thresholds.
        csv_path: Where to export the results table, if anywhere.
        plot_path: Where to save the summary figure, if anywhere.
    """
    num_trials: int = DEFAULT_RANDOM_TRIALS
    seed: int = DEFAULT_SEED
    stop_on_failure: bool = True
    verbose: bool = False
    tolerances: Tolerances = field(default_factory=Tolerances)
    csv_path: Optional[str] = None
    plot_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VerificationConfig':
        """
        Build a config from a parsed YAML mapping.

        Raises
        ------
        ValueError
            On unknown keys or a negative trial count.
        """
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown verification settings: {sorted(unknown)}")

        tol_data = data.pop('tolerances', None) or {}
        tol_known = {f.name for f in fields(Tolerances)}
        tol_unknown = set(tol_data) - tol_known
        if tol_unknown:
            raise ValueError(f"Unknown tolerance settings: {sorted(tol_unknown)}")

        config = cls(tolerances=Tolerances(**{k: float(v) for k, v in tol_data.items()}),
                     **data)
        if config.num_trials < 0:
            raise ValueError(f"num_trials must be >= 0, got {config.num_trials}")
        return config


class VerificationHarness:
    """
    Runs and records the decomposition verification campaign.

    Parameters
    ----------
    config : VerificationConfig, optional
        Run settings. Defaults to VerificationConfig().
    decomposer : callable, optional
        Function (r, e_q) -> (p, q) under test. Defaults to
        core.decomposition.decompose_rotation.
    echo : callable, optional
        Sink for the textual report lines. Defaults to print.

    Attributes
    ----------
    results : pd.DataFrame
        One row per executed trial (empty before run()).
    """

    def __init__(self, config: Optional[VerificationConfig] = None,
                 decomposer: Optional[Decomposer] = None,
                 echo: Callable[[str], None] = print) -> None:
        self.config = config or VerificationConfig()
        self.decomposer = decomposer or decompose_rotation
        self.echo = echo
        self._records: List[Dict[str, Any]] = []
        self._failed_groups: List[str] = []

    # =========================================================================
    # CASE GENERATION
    # =========================================================================

    def groups(self) -> List[Tuple[str, Iterable[TestCase]]]:
        """Canonical groups in report order, followed by the random group."""
        ordered: Dict[str, List[TestCase]] = {}
        for case in canonical_cases():
            ordered.setdefault(case.group, []).append(case)

        rng = np.random.default_rng(self.config.seed)
        grouped: List[Tuple[str, Iterable[TestCase]]] = list(ordered.items())
        if self.config.num_trials > 0:
            grouped.append((GROUP_RANDOM, random_cases(self.config.num_trials, rng)))
        return grouped

    # =========================================================================
    # EXECUTION
    # =========================================================================

    def run_case(self, case: TestCase) -> PropertyReport:
        """Decompose and check one case, recording the outcome."""
        p, q = self.decomposer(case.r, case.e_q)
        report = check_decomposition(case.r, case.e_q, p, q,
                                     self.config.tolerances)

        record = {'group': case.group, 'label': case.label,
                  'case': classify_alignment(case.r, case.e_q).name}
        record.update(report.as_record())
        self._records.append(record)

        if self.config.verbose:
            self.echo(format_report(report))
        if not report.passed:
            logger.warning(f"Verification failed for {case.label}:\n"
                           f"{format_report(report)}")
        return report

    def run_group(self, name: str, cases: Iterable[TestCase]) -> bool:
        """
        Run every case of a group, or stop at the first failure when
        stop_on_failure is set.
        """
        self.echo(name)
        logger.info(f"Running group '{name}'")

        all_passed = True
        for case in cases:
            if not self.run_case(case).passed:
                all_passed = False
                if self.config.stop_on_failure:
                    break

        self.echo("Good." if all_passed else "Something wrong.")
        if not all_passed:
            self._failed_groups.append(name)
        return all_passed

    def run(self) -> bool:
        """
        Execute the full campaign.

        Returns
        -------
        bool
            True if every executed trial passed.
        """
        self._records = []
        self._failed_groups = []

        logger.info("=" * 60)
        logger.info("SWING-TWIST DECOMPOSITION VERIFICATION")
        logger.info(f"Random trials: {self.config.num_trials}, "
                    f"seed: {self.config.seed}")
        logger.info("=" * 60)

        for i, (name, cases) in enumerate(self.groups()):
            if i > 0:
                self.echo("")
            if not self.run_group(name, cases) and self.config.stop_on_failure:
                logger.error(f"Stopping after failing group '{name}'")
                return False

        ok = not self._failed_groups
        if ok:
            self.echo("")
            self.echo("All OK.")
            logger.info(f"All {len(self._records)} trials passed")
        else:
            logger.error(f"Failing groups: {self._failed_groups}")
        return ok

    # =========================================================================
    # RESULTS
    # =========================================================================

    @property
    def results(self) -> pd.DataFrame:
        return pd.DataFrame(self._records)

    @property
    def failed_groups(self) -> List[str]:
        return list(self._failed_groups)

    def summary(self) -> Dict[str, Any]:
        """
        Aggregate statistics of the last run.

        Returns
        -------
        dict
            total / passed / failed trial counts, per-group and per-case
            counts, and the worst value of each error metric.
        """
        df = self.results
        if df.empty:
            logger.warning("No results to summarise.")
            return {'total': 0, 'passed': 0, 'failed': 0}

        error_cols = ['norm_error_p', 'norm_error_q', 'reconstruction_error',
                      'fixed_axis_error', 'orthogonality_error']
        n_passed = int(df['passed'].sum())
        return {
            'total': len(df),
            'passed': n_passed,
            'failed': len(df) - n_passed,
            'by_group': df.groupby('group', sort=False).size().to_dict(),
            'by_case': df.groupby('case').size().to_dict(),
            'worst': {col: float(df[col].max()) for col in error_cols},
        }

    def save_csv(self, path: str) -> str:
        """Write the results table to CSV, creating parent directories."""
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.results.to_csv(path, index=False)
        logger.info(f"Results saved to {path}")
        return path
