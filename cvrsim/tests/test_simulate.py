import unittest
import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

from cvrsim.config import (Configuration,
                           ENRICHED_AIR_CO2,
                           NORMAL_AIR_CO2,
                           TOTAL_DURATION)
from cvrsim.noise import NoiseCache
from cvrsim.simulate import (get_co2_time_points,
                             get_mri_deterministic_signal,
                             get_mri_time_points,
                             simulate_co2_signal,
                             simulate_experiment,
                             simulate_mri_signal)
from cvrsim.utils import (extract_end_tidal,
                          get_display_range,
                          get_response_factor,
                          get_stimulus_onsets,
                          get_time_points)


def quiet_configuration(**kwargs):
    """Configuration without noise, drift and CO2 variance."""
    settings = dict(enable_mri_noise=False,
                    enable_mri_drift=False,
                    enable_co2_drift=False,
                    enable_co2_variance=False)
    settings.update(kwargs)
    return Configuration(**settings)


class TimePointsTest(unittest.TestCase):

    def assert_time_axis(self, t):
        self.assertTrue(np.all(np.diff(t) > 0))
        self.assertEqual(t[0], 0.0)
        self.assertEqual(t[-1], TOTAL_DURATION)

    def test_default_axes(self):
        config = Configuration()

        co2_t = get_co2_time_points(config)
        mri_t = get_mri_time_points(config)

        self.assertEqual(len(co2_t), 3001)
        self.assertEqual(len(mri_t), 151)
        self.assert_time_axis(co2_t)
        self.assert_time_axis(mri_t)

    def test_interval_not_dividing_duration(self):
        t = get_time_points(TOTAL_DURATION, 7.0)

        self.assert_time_axis(t)
        self.assertEqual(len(t), 44)
        self.assertAlmostEqual(t[-2], 294.0)


class ResponseFactorTest(unittest.TestCase):

    def test_boxcar(self):
        t = np.array([0., 59., 60., 119., 120., 180., 299.])
        assert_array_equal(get_response_factor(t, 'boxcar', 8., 12.),
                           [0, 0, 1, 1, 0, 1, 0])

    def test_exponential(self):
        t = np.array([30., 68., 132., 240. + 24.])
        factor = get_response_factor(t, 'exponential', 8., 12.)

        assert_allclose(factor, [0.0,
                                 1 - np.exp(-1),
                                 np.exp(-1),
                                 np.exp(-2)])

    def test_invalid_time_constants_fall_back_to_step(self):
        t = np.array([10., 70., 130.])

        assert_allclose(get_response_factor(t, 'exponential', 0., 12.),
                        [0., 1., np.exp(-10. / 12.)])
        assert_allclose(get_response_factor(t, 'exponential', 8., -1.),
                        [0., 1 - np.exp(-10. / 8.), 0.])

    def test_stimulus_onsets(self):
        t = get_time_points(TOTAL_DURATION, 2.0)
        # 60 s, 180 s and the closing sample at 300 s
        assert_array_equal(get_stimulus_onsets(t), [30, 90, 150])


class CO2SignalTest(unittest.TestCase):

    def setUp(self):
        self.config = quiet_configuration()
        self.t = get_co2_time_points(self.config)
        self.enriched = (self.t > 60.5) & (self.t < 119.5)
        self.baseline = self.t < 59.5

    def test_ranges(self):
        co2 = simulate_co2_signal(self.config, self.t)

        self.assertEqual(co2.shape, self.t.shape)
        self.assertGreaterEqual(co2[self.baseline].min(), NORMAL_AIR_CO2[0] - 1e-9)
        self.assertLessEqual(co2[self.baseline].max(), NORMAL_AIR_CO2[1] + 1e-9)
        self.assertGreaterEqual(co2[self.enriched].min(), ENRICHED_AIR_CO2[0] - 1e-9)
        self.assertLessEqual(co2[self.enriched].max(), ENRICHED_AIR_CO2[1] + 1e-9)

    def test_variance_moves_ceiling_by_amplitude(self):
        self.config.enable_co2_variance = True
        self.config.co2_variance_amplitude = 2.0

        co2 = simulate_co2_signal(self.config, self.t)

        self.assertLessEqual(co2[self.enriched].max(), ENRICHED_AIR_CO2[1] + 2.0 + 1e-9)
        self.assertGreater(co2[self.enriched].max(), ENRICHED_AIR_CO2[1])

    def test_phase_changes_signal(self):
        self.config.enable_co2_variance = True

        co2_a = simulate_co2_signal(self.config, self.t, phase=0.0)
        co2_b = simulate_co2_signal(self.config, self.t, phase=1.0)

        self.assertFalse(np.allclose(co2_a, co2_b))

    def test_drift_is_added(self):
        co2 = simulate_co2_signal(self.config, self.t)

        self.config.enable_co2_drift = True
        drifted = simulate_co2_signal(self.config, self.t)

        self.assertAlmostEqual(drifted[-1] - co2[-1],
                               self.config.co2_linear_drift +
                               self.config.co2_quadratic_drift +
                               self.config.co2_cubic_drift)


class MRISignalTest(unittest.TestCase):

    def test_deterministic_signal(self):
        config = quiet_configuration(mri_response_amplitude=100.,
                                     mri_baseline_signal=1200.)
        t = get_mri_time_points(config)

        mri = simulate_mri_signal(config, t)

        expected = 1200. + 100. * ((t // 60) % 2 == 1)
        assert_allclose(mri, expected)

    def test_drift_in_percent_of_baseline(self):
        config = quiet_configuration(enable_mri_drift=True,
                                     mri_response_amplitude=0.)
        t = np.array([0., 300.])

        mri = get_mri_deterministic_signal(config, t)

        self.assertAlmostEqual(mri[0], 1200.)
        self.assertAlmostEqual(mri[1], 1200. * (1 + (3. + 3. + 4.) / 100.))

    def test_noise_is_scaled(self):
        config = quiet_configuration(enable_mri_noise=True,
                                     mri_noise_amplitude=5.)
        t = get_mri_time_points(config)
        noise = NoiseCache(seed=1).ensure(len(t))

        mri = simulate_mri_signal(config, t, noise)

        assert_allclose(mri - get_mri_deterministic_signal(config, t), noise * 5.)

    def test_noise_length_mismatch(self):
        config = Configuration()
        t = get_mri_time_points(config)

        with self.assertRaises(ValueError):
            simulate_mri_signal(config, t, np.zeros(3))


class NoiseCacheTest(unittest.TestCase):

    def test_cached_until_forced(self):
        cache = NoiseCache(seed=7)
        noise = cache.ensure(151).copy()

        assert_array_equal(cache.ensure(151), noise)
        self.assertFalse(np.array_equal(cache.ensure(151, force_regenerate=True), noise))

    def test_new_length_draws_new_noise(self):
        cache = NoiseCache(seed=7)
        cache.ensure(151)

        self.assertEqual(len(cache.ensure(76)), 76)

    def test_normalized(self):
        noise = NoiseCache(seed=11).ensure(20000)

        self.assertTrue(np.all(np.isfinite(noise)))
        self.assertAlmostEqual(noise.mean(), 0, delta=0.05)
        self.assertAlmostEqual(noise.std(), 1, delta=0.05)

    def test_clear(self):
        cache = NoiseCache(seed=7)
        cache.ensure(10)
        cache.clear()

        self.assertEqual(len(cache), 0)
        self.assertFalse(cache.matches(10))


class EndTidalTest(unittest.TestCase):

    def test_one_point_per_breath(self):
        config = quiet_configuration()
        t = get_co2_time_points(config)
        co2 = np.sin(2 * np.pi * config.breathing_rate / 60. * t)

        times, values = extract_end_tidal(co2, t,
                                          config.co2_sampling_rate,
                                          config.breathing_rate)

        self.assertEqual(len(times), 75)
        assert_allclose(times, 1. + 4. * np.arange(75), atol=1e-9)
        assert_allclose(values, 1., atol=1e-9)

    def test_ties_suppress_candidates(self):
        co2 = np.array([0., 5., 0., 5., 0., 0., 0., 0., 0., 7., 0., 0.])
        t = np.arange(len(co2), dtype=float)

        # half window of 2 samples
        times, values = extract_end_tidal(co2, t, 1., 60.)

        assert_array_equal(times, [9.])
        assert_array_equal(values, [7.])

    def test_plateau_is_not_a_peak(self):
        co2 = np.array([0., 1., 3., 3., 1., 0.])
        times, _ = extract_end_tidal(co2, np.arange(6.), 1., 60.)

        self.assertEqual(len(times), 0)

    def test_real_co2_trace(self):
        config = quiet_configuration()
        t = get_co2_time_points(config)
        co2 = simulate_co2_signal(config, t)

        times, values = extract_end_tidal(co2, t,
                                          config.co2_sampling_rate,
                                          config.breathing_rate)

        self.assertTrue(np.all(np.diff(times) > 0))
        enriched = (times > 60.5) & (times <= 118)
        assert_allclose(values[enriched], ENRICHED_AIR_CO2[1], atol=1e-6)


def test_simulate_experiment():
    config = Configuration()
    co2, mri = simulate_experiment(config, NoiseCache(seed=3))

    assert len(co2) == len(get_co2_time_points(config))
    assert len(mri) == len(get_mri_time_points(config))
    assert mri.index.name == 'time'
    assert list(mri.columns) == ['signal', 'response']


def test_display_range():
    assert get_display_range([], 1200.) == (1150., 1250.)
    assert get_display_range([np.arange(10.)], 1200., dynamic=False) == (1150., 1250.)
    assert get_display_range([np.full(5, 3.)], 1200.) == (1150., 1250.)

    low, high = get_display_range([np.array([1190., 1210.]), np.array([1200.])], 1200.)
    assert np.isclose(low, 1188.)
    assert np.isclose(high, 1212.)
