import numpy as np
import pytest
from numpy.testing import assert_allclose

from cvrsim.config import Configuration
from cvrsim.metrics import (EMPTY_METRICS,
                            compute_metrics,
                            get_cnr,
                            get_fir_response_magnitude,
                            get_fir_window_indices,
                            get_noise_rms,
                            get_percent_change,
                            get_snr)


FIR_BETAS = np.array([1.0, -3.0, 2.0, 0.5])


@pytest.mark.parametrize('method, expected', [
    ('maximum', 3.0),
    ('mean', (1.0 + 3.0 + 2.0 + 0.5) / 4),
    ('mean_positive', (1.0 + 2.0 + 0.5) / 3),
])
def test_fir_magnitude_methods(method, expected):
    magnitude, peak_time = get_fir_response_magnitude(FIR_BETAS, 4, 2.0, method=method)

    assert np.isclose(magnitude, expected)
    assert peak_time == 2.0


def test_fir_magnitude_ignores_drift_betas():
    betas = np.append(FIR_BETAS, [1200.0, 10.0])
    magnitude, _ = get_fir_response_magnitude(betas, 4, 2.0, method='maximum')
    assert magnitude == 3.0


def test_fir_mean_positive_without_positive_betas():
    magnitude, _ = get_fir_response_magnitude(-np.abs(FIR_BETAS), 4, 2.0,
                                              method='mean_positive')
    assert magnitude == 0.0


def test_fir_time_window():
    # post-onset times 0, 2, 4, 6 s
    magnitude, _ = get_fir_response_magnitude(FIR_BETAS, 4, 2.0,
                                              method='time_window',
                                              window=(2.0, 4.0))
    assert np.isclose(magnitude, 2.5)

    # window past the coverage is clamped to the last regressor
    magnitude, _ = get_fir_response_magnitude(FIR_BETAS, 4, 2.0,
                                              method='time_window',
                                              window=(5.0, 100.0))
    assert np.isclose(magnitude, 0.5)

    # reversed window
    magnitude, _ = get_fir_response_magnitude(FIR_BETAS, 4, 2.0,
                                              method='time_window',
                                              window=(5.0, 3.0))
    assert magnitude == 0.0


def test_fir_window_indices():
    assert get_fir_window_indices(45, 2.0, 30.0, 60.0) == (15, 30)
    assert get_fir_window_indices(45, 2.0, 31.0, 59.0) == (16, 29)
    assert get_fir_window_indices(45, 2.0, -10.0, 200.0) == (0, 44)
    assert get_fir_window_indices(0, 2.0, 0.0, 10.0) == (0, -1)


def test_percent_change():
    assert np.isclose(get_percent_change(100.0, 1200.0), 100.0 / 12)
    assert np.isclose(get_percent_change(-100.0, -1200.0), 100.0 / 12)
    assert get_percent_change(100.0, None) == 0.0
    assert get_percent_change(100.0, 0.0) == 0.0


def test_snr_cnr():
    noise_rms = get_noise_rms(np.array([2.0, -2.0, 2.0, -2.0]))
    assert noise_rms == 2.0

    assert get_snr(1200.0, noise_rms) == 600.0
    assert get_cnr(-100.0, noise_rms) == 50.0

    assert get_snr(1200.0, 0.0) == 0.0
    assert get_snr(None, noise_rms) == 0.0
    assert get_cnr(0.0, noise_rms) == 0.0


def test_compute_metrics_boxcar():
    config = Configuration()
    betas = np.array([100.0, 1200.0, 1.0, 2.0, 3.0])
    residuals = np.array([1.0, -1.0])

    metrics = compute_metrics(config, betas, residuals)

    assert_allclose(metrics.percent_change, 100.0 / 12)
    assert metrics.snr == 1200.0
    assert metrics.cnr == 100.0
    assert metrics.fir_response_magnitude == 0.0


def test_compute_metrics_without_constant():
    config = Configuration(include_constant_term=False)
    metrics = compute_metrics(config, np.array([100.0, 5.0]), np.array([1.0, -1.0]))

    assert metrics.percent_change == 0.0
    assert metrics.snr == 0.0
    assert metrics.cnr == 100.0


def test_compute_metrics_fir():
    config = Configuration(analysis_model='fir',
                           fir_coverage_duration=8.0,
                           fir_response_method='maximum')
    betas = np.append(FIR_BETAS, [1000.0, 0.0, 0.0, 0.0])

    metrics = compute_metrics(config, betas, np.array([0.5, -0.5]))

    assert np.isclose(metrics.percent_change, 0.3)
    assert metrics.fir_response_magnitude == 3.0
    assert metrics.fir_peak_time == 2.0
    assert metrics.snr == 2000.0
    assert metrics.cnr == 6.0


def test_compute_metrics_empty_model():
    assert compute_metrics(Configuration(), np.zeros(0), np.zeros(10)) == EMPTY_METRICS
