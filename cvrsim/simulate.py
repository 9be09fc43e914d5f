import numpy as np
import pandas as pd
from .config import (TOTAL_DURATION,
                     NORMAL_AIR_CO2,
                     ENRICHED_AIR_CO2)
from .noise import NoiseCache
from .utils import (get_time_points,
                    get_block_pattern,
                    get_response_factor,
                    get_polynomial_drift)


def get_co2_time_points(config):
    return get_time_points(TOTAL_DURATION, 1.0 / config.co2_sampling_rate)


def get_mri_time_points(config):
    return get_time_points(TOTAL_DURATION, config.mri_sampling_interval)


def get_simulated_response(config, time_points):
    return get_response_factor(time_points,
                               config.response_shape,
                               config.response_rise_time,
                               config.response_fall_time)


def simulate_co2_signal(config, time_points=None, phase=0.0):
    """
    Simulate the partial pressure of CO2 at the mouth.

    A respiratory sine wave is mapped onto a pCO2 range whose floor jumps
    between the normal-air and enriched-air minimum with the blocks, and
    whose ceiling follows the simulated response towards the enriched-air
    maximum.

    When CO2 variance is enabled, one slow sinusoid (phase `phase`)
    modulates both the breathing phase and the size of the range; at its
    extremes the ceiling moves by `co2_variance_amplitude` mmHg.
    """
    if time_points is None:
        time_points = get_co2_time_points(config)

    t = np.asarray(time_points, dtype=float)
    breathing_rate_hz = config.breathing_rate / 60.0

    enriched = get_block_pattern(t).astype(bool)
    factor = get_simulated_response(config, t)

    floor = np.where(enriched, ENRICHED_AIR_CO2[0], NORMAL_AIR_CO2[0])
    ceiling = NORMAL_AIR_CO2[1] + factor * (ENRICHED_AIR_CO2[1] - NORMAL_AIR_CO2[1])
    span = ceiling - floor

    respiratory_phase = 2.0 * np.pi * breathing_rate_hz * t

    if config.enable_co2_variance:
        modulation = np.sin(2.0 * np.pi * config.co2_variance_frequency * t + phase)
        respiratory_phase = respiratory_phase + config.co2_phase_variance * modulation

        scale = np.ones_like(t)
        valid = span > 0
        scale[valid] += modulation[valid] * config.co2_variance_amplitude / span[valid]
        span = span * scale

    respiratory_wave = np.sin(respiratory_phase)
    co2 = floor + (respiratory_wave + 1.0) / 2.0 * span

    if config.enable_co2_drift:
        co2 = co2 + get_polynomial_drift(t,
                                         config.co2_linear_drift,
                                         config.co2_quadratic_drift,
                                         config.co2_cubic_drift)

    return co2


def get_mri_deterministic_signal(config, time_points):
    """Baseline, response and drift of the MRI signal, without noise."""
    t = np.asarray(time_points, dtype=float)

    mri = config.mri_baseline_signal + \
        config.mri_response_amplitude * get_simulated_response(config, t)

    if config.enable_mri_drift:
        # drift coefficients are in percent of baseline
        mri = mri + get_polynomial_drift(t,
                                         config.mri_linear_drift,
                                         config.mri_quadratic_drift,
                                         config.mri_cubic_drift) * \
            config.mri_baseline_signal / 100.0

    return mri


def simulate_mri_signal(config, time_points, noise=None):
    """
    Simulate the MRI signal from its deterministic part and a normalized
    noise sequence (as handed out by :class:`NoiseCache`), scaled by
    `mri_noise_amplitude`.
    """
    mri = get_mri_deterministic_signal(config, time_points)

    if config.enable_mri_noise:
        if noise is None or len(noise) != len(mri):
            raise ValueError('Noise sequence does not match the number of MRI samples')
        mri = mri + np.asarray(noise) * config.mri_noise_amplitude

    return mri


def simulate_experiment(config, noise_cache=None, co2_phase=0.0):
    """
    This function simulates one hypercapnia run.

    Returns
    -------
    co2 : pd.DataFrame
        pCO2 indexed by time, with the block pattern.

    mri : pd.DataFrame
        MRI signal indexed by time, with the simulated response.
    """
    if noise_cache is None:
        noise_cache = NoiseCache()

    co2_times = get_co2_time_points(config)
    mri_times = get_mri_time_points(config)

    co2 = pd.DataFrame({'co2': simulate_co2_signal(config, co2_times, co2_phase),
                        'block': get_block_pattern(co2_times)},
                       index=pd.Index(co2_times, name='time'))

    noise = noise_cache.ensure(len(mri_times))
    mri = pd.DataFrame({'signal': simulate_mri_signal(config, mri_times, noise),
                        'response': get_simulated_response(config, mri_times)},
                       index=pd.Index(mri_times, name='time'))

    return co2, mri
