"""
===============================================================================
SWING-TWIST PROJECT - Verification Harness Test Suite
===============================================================================
Tests for the verification side: canonical and random case sources, the
property checker and its report text, the harness run/stop semantics and
result aggregation, YAML configuration and the command-line exit status.
===============================================================================
"""

import sys
import os

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import numpy as np
import pandas as pd
import pytest
import yaml
from numpy.testing import assert_allclose

import main as cli
from core.decomposition import decompose_rotation
from core.quaternion import Quaternion
from verification.cases import (
    GROUP_ALIGNED, GROUP_FLIPPED, GROUP_RANDOM,
    canonical_cases, random_cases, random_direction,
)
from verification.checks import Tolerances, check_decomposition, format_report
from verification.harness import VerificationConfig, VerificationHarness


def swap_decomposer(r, e_q):
    """Deliberately wrong: returns the factors in the wrong order."""
    p, q = decompose_rotation(r, e_q)
    return q, p


def scaled_decomposer(r, e_q):
    """Deliberately wrong: a non-unit twist."""
    p, q = decompose_rotation(r, e_q)
    return p, Quaternion(*(2.0 * q.components), normalize=False)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def echo_lines():
    """Collects the harness's textual output."""
    lines = []
    return lines


@pytest.fixture
def small_config():
    return VerificationConfig(num_trials=25, seed=5)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / 'verification.yaml'
    path.write_text(yaml.safe_dump({
        'verification': {
            'num_trials': 10,
            'seed': 3,
            'tolerances': {'fixed_axis': 1e-8},
        }
    }))
    return str(path)


# =============================================================================
# Test: Case sources
# =============================================================================

class TestCases:
    """Tests for canonical and random case generation."""

    def test_canonical_groups_in_order(self):
        groups = [case.group for case in canonical_cases()]
        assert groups == [GROUP_ALIGNED, GROUP_ALIGNED, GROUP_FLIPPED, GROUP_FLIPPED]

    def test_canonical_inputs(self):
        cases = canonical_cases()
        assert_allclose(cases[1].r.components, [0.0, 1.0, 0.0, 0.0])
        assert_allclose(cases[2].e_q, [0.0, 0.0, 1.0])
        assert_allclose(cases[3].r.components,
                        [1 / np.sqrt(2), 1 / np.sqrt(2), 0.0, 0.0], atol=1e-15)

    def test_random_cases_count_and_group(self):
        cases = list(random_cases(12, np.random.default_rng(0)))
        assert len(cases) == 12
        assert all(case.group == GROUP_RANDOM for case in cases)
        assert all(case.r.is_unit() for case in cases)

    def test_random_cases_reproducible(self):
        a = list(random_cases(5, np.random.default_rng(11)))
        b = list(random_cases(5, np.random.default_rng(11)))
        for ca, cb in zip(a, b):
            assert_allclose(ca.r.components, cb.r.components)
            assert_allclose(ca.e_q, cb.e_q)

    def test_random_direction_unit(self):
        rng = np.random.default_rng(8)
        for _ in range(50):
            assert_allclose(np.linalg.norm(random_direction(rng)), 1.0, atol=1e-15)

    def test_random_direction_isotropic(self):
        """The mean of many uniform unit vectors is close to zero."""
        rng = np.random.default_rng(8)
        mean = np.mean([random_direction(rng) for _ in range(20000)], axis=0)
        assert_allclose(mean, np.zeros(3), atol=0.02)


# =============================================================================
# Test: Property checker
# =============================================================================

class TestChecks:
    """Tests for check_decomposition and format_report."""

    def test_canonical_cases_pass(self):
        for case in canonical_cases():
            p, q = decompose_rotation(case.r, case.e_q)
            report = check_decomposition(case.r, case.e_q, p, q)
            assert report.passed, format_report(report)

    def test_aligned_orthogonality_vacuous(self):
        """p = identity has no axis; orthogonality holds trivially."""
        e_q = np.array([0.0, 0.0, 1.0])
        r = Quaternion.from_axis_angle(e_q, 1.0)
        p, q = decompose_rotation(r, e_q)
        report = check_decomposition(r, e_q, p, q)
        assert_allclose(report.e_p, np.zeros(3))
        assert report.theta_p == 0.0
        assert report.is_vert

    def test_swapped_factors_fail(self):
        r = Quaternion.from_axis_angle(np.array([1.0, 2.0, 3.0]), 1.3)
        e_q = np.array([0.0, 1.0, 0.0])
        p, q = swap_decomposer(r, e_q)
        report = check_decomposition(r, e_q, p, q)
        assert not report.is_fixed
        assert not report.passed

    def test_non_unit_twist_fails_size(self):
        r = Quaternion.from_axis_angle(np.array([1.0, 0.0, 1.0]), 0.8)
        e_q = np.array([1.0, 0.0, 0.0])
        p, q = scaled_decomposer(r, e_q)
        report = check_decomposition(r, e_q, p, q)
        assert report.size_p
        assert not report.size_q
        assert not report.passed

    def test_reconstruction_up_to_sign(self):
        """-q in place of q still reconstructs r."""
        r = Quaternion.from_axis_angle(np.array([0.0, 1.0, 1.0]), 2.0)
        e_q = np.array([1.0, 0.0, 0.0])
        p, q = decompose_rotation(r, e_q)
        report = check_decomposition(r, e_q, p, -q)
        assert report.is_rpq

    def test_tolerances_applied(self):
        r = Quaternion.from_axis_angle(np.array([1.0, 0.0, 0.0]), 0.5)
        e_q = np.array([0.0, 0.0, 1.0])
        p, q = decompose_rotation(r, e_q)
        strict = Tolerances(unit_norm=-1.0)
        assert not check_decomposition(r, e_q, p, q, strict).size_p

    def test_nan_outputs_fail(self):
        r = Quaternion.from_axis_angle(np.array([0.0, 1.0, 0.0]), 0.5)
        nan = Quaternion(np.nan, np.nan, np.nan, np.nan, normalize=False)
        report = check_decomposition(r, np.array([1.0, 0.0, 0.0]), nan, nan)
        assert not report.passed

    def test_record_columns(self):
        r = Quaternion.identity()
        e_q = np.array([1.0, 0.0, 0.0])
        p, q = decompose_rotation(r, e_q)
        record = check_decomposition(r, e_q, p, q).as_record()
        for key in ('r_w', 'e_q_z', 'p_x', 'q_y', 'theta_p', 'theta_q',
                    'reconstruction_error', 'passed'):
            assert key in record
        assert record['passed'] is True

    def test_format_report(self):
        r = Quaternion(0.0, 1.0, 0.0, 0.0)
        e_q = np.array([0.0, 0.0, 1.0])
        p, q = decompose_rotation(r, e_q)
        text = format_report(check_decomposition(r, e_q, p, q))
        assert text.startswith("decomposition test")
        assert "    quaternion p" in text
        assert "theta_p: 3.14159" in text
        assert "r = p * q: 1" in text
        assert "e_p and e_q are vertical: 1" in text


# =============================================================================
# Test: Harness
# =============================================================================

class TestHarness:
    """Tests for VerificationHarness execution and aggregation."""

    def test_run_passes(self, small_config, echo_lines):
        harness = VerificationHarness(small_config, echo=echo_lines.append)
        assert harness.run()
        assert echo_lines[0] == GROUP_ALIGNED
        assert echo_lines.count("Good.") == 3
        assert echo_lines[-1] == "All OK."
        assert harness.failed_groups == []

    def test_results_table(self, small_config):
        harness = VerificationHarness(small_config, echo=lambda s: None)
        harness.run()
        df = harness.results
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 4 + 25
        assert df['passed'].all()
        assert set(df['case']) <= {'ALIGNED', 'FLIPPED', 'GENERAL'}
        assert list(df['case'][:4]) == ['ALIGNED', 'ALIGNED', 'FLIPPED', 'GENERAL']

    def test_summary(self, small_config):
        harness = VerificationHarness(small_config, echo=lambda s: None)
        harness.run()
        summary = harness.summary()
        assert summary['total'] == 29
        assert summary['failed'] == 0
        assert summary['by_group'] == {GROUP_ALIGNED: 2, GROUP_FLIPPED: 2,
                                       GROUP_RANDOM: 25}
        assert summary['worst']['reconstruction_error'] < 1e-9

    def test_summary_before_run(self):
        assert VerificationHarness(echo=lambda s: None).summary()['total'] == 0

    def test_no_random_trials(self, echo_lines):
        harness = VerificationHarness(VerificationConfig(num_trials=0),
                                      echo=echo_lines.append)
        assert harness.run()
        assert GROUP_RANDOM not in echo_lines
        assert len(harness.results) == 4

    def test_stops_at_first_failure(self, small_config, echo_lines):
        harness = VerificationHarness(small_config, decomposer=swap_decomposer,
                                      echo=echo_lines.append)
        assert not harness.run()
        assert echo_lines == [GROUP_ALIGNED, "Something wrong."]
        assert harness.failed_groups == [GROUP_ALIGNED]
        # first aligned case is the identity, where swapping is harmless
        assert len(harness.results) == 2

    def test_keep_going_runs_every_case(self, echo_lines):
        config = VerificationConfig(num_trials=10, seed=1, stop_on_failure=False)
        harness = VerificationHarness(config, decomposer=scaled_decomposer,
                                      echo=echo_lines.append)
        assert not harness.run()
        assert len(harness.results) == 14
        assert harness.failed_groups == [GROUP_ALIGNED, GROUP_FLIPPED, GROUP_RANDOM]
        assert "All OK." not in echo_lines

    def test_verbose_prints_reports(self, echo_lines):
        config = VerificationConfig(num_trials=0, verbose=True)
        VerificationHarness(config, echo=echo_lines.append).run()
        assert sum(line.startswith("decomposition test") for line in echo_lines) == 4

    def test_same_seed_same_results(self):
        a = VerificationHarness(VerificationConfig(num_trials=5, seed=9),
                                echo=lambda s: None)
        b = VerificationHarness(VerificationConfig(num_trials=5, seed=9),
                                echo=lambda s: None)
        a.run()
        b.run()
        pd.testing.assert_frame_equal(a.results, b.results)

    def test_save_csv(self, small_config, tmp_path):
        harness = VerificationHarness(small_config, echo=lambda s: None)
        harness.run()
        path = harness.save_csv(str(tmp_path / 'out' / 'results.csv'))
        loaded = pd.read_csv(path)
        assert len(loaded) == 29
        assert 'orthogonality_error' in loaded.columns


# =============================================================================
# Test: Configuration
# =============================================================================

class TestConfig:
    """Tests for VerificationConfig parsing and YAML loading."""

    def test_defaults(self):
        config = VerificationConfig.from_dict({})
        assert config.num_trials == 1000
        assert config.stop_on_failure
        assert config.tolerances.unit_norm == 1e-10

    def test_from_dict(self):
        config = VerificationConfig.from_dict({
            'num_trials': 7, 'verbose': True,
            'tolerances': {'orthogonality': 1e-6},
        })
        assert config.num_trials == 7
        assert config.verbose
        assert config.tolerances.orthogonality == 1e-6
        assert config.tolerances.reconstruction == 1e-9

    @pytest.mark.parametrize("data", [
        {'trials': 5},
        {'tolerances': {'norm': 1e-3}},
        {'num_trials': -1},
    ])
    def test_invalid(self, data):
        with pytest.raises(ValueError):
            VerificationConfig.from_dict(data)

    def test_load_config_file(self, config_file):
        config = cli.load_config(config_file)
        assert config.num_trials == 10
        assert config.seed == 3
        assert config.tolerances.fixed_axis == 1e-8

    def test_load_config_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            cli.load_config(str(tmp_path / 'absent.yaml'))

    def test_shipped_config_matches_defaults(self):
        config = cli.load_config(str(cli.DEFAULT_CONFIG_PATH))
        assert config.num_trials == VerificationConfig().num_trials
        assert config.tolerances == Tolerances()


# =============================================================================
# Test: Command line
# =============================================================================

class TestCommandLine:
    """Tests for main() exit status and outputs."""

    def test_success_exit_zero(self, config_file, capsys):
        assert cli.main(['--config', config_file]) == 0
        out = capsys.readouterr().out
        assert "All OK." in out

    def test_failure_exit_nonzero(self, config_file, monkeypatch, capsys):
        monkeypatch.setattr('verification.harness.decompose_rotation',
                            swap_decomposer)
        assert cli.main(['--config', config_file]) == 1
        assert "Something wrong." in capsys.readouterr().out

    def test_bad_config_exit_nonzero(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("verification:\n  unknown_key: 1\n")
        assert cli.main(['--config', str(path)]) == 1

    def test_negative_trials_rejected(self, config_file):
        assert cli.main(['--config', config_file, '--trials', '-3']) == 1

    def test_usage_error(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(['--no-such-flag'])
        assert exc.value.code == 2

    def test_overrides_and_exports(self, config_file, tmp_path, capsys):
        csv_path = tmp_path / 'results.csv'
        plot_path = tmp_path / 'plots' / 'summary.png'
        status = cli.main(['--config', config_file, '--trials', '3',
                           '--verbose', '--csv', str(csv_path),
                           '--plot', str(plot_path)])
        assert status == 0
        assert len(pd.read_csv(csv_path)) == 7
        assert plot_path.exists()
        assert "decomposition test" in capsys.readouterr().out
