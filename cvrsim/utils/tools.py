import logging
import numpy as np
from scipy import signal

from ..config import (TOTAL_DURATION,
                      BLOCK_DURATION,
                      ResponseShape)


def get_time_points(total_duration, sample_interval):
    """Sample times 0, dt, 2dt, ... below `total_duration`, closed by
    `total_duration` itself."""
    n = int(np.ceil(total_duration / sample_interval - 1e-9))
    n = max(n, 1)
    timepoints = np.arange(n) * sample_interval
    return np.append(timepoints, float(total_duration))


def get_block_index(time_points, block_duration=BLOCK_DURATION):
    # tolerance keeps t = k * block_duration from landing in block k - 1
    return np.floor(np.asarray(time_points, dtype=float) / block_duration + 1e-9).astype(int)


def get_block_pattern(time_points, block_duration=BLOCK_DURATION):
    """1.0 inside enriched (odd) blocks, 0.0 elsewhere."""
    return (get_block_index(time_points, block_duration) % 2 == 1).astype(float)


def get_response_factor(time_points,
                        shape,
                        rise_time,
                        fall_time,
                        block_duration=BLOCK_DURATION):
    """
    Response to the block paradigm, between 0 and 1.

    Parameters
    ----------
    time_points : np.array (n_timepoints,)
        Sample times in seconds.

    shape : ResponseShape or str
        'boxcar' switches instantly; 'exponential' rises with `rise_time`
        inside enriched blocks and decays with `fall_time` during the
        baseline block that follows.

    rise_time, fall_time : float
        Time constants in seconds. A non-positive constant falls back to
        the step response for the blocks it governs.

    Returns
    -------
    factor : np.array (n_timepoints,)
    """
    time_points = np.asarray(time_points, dtype=float)
    block = get_block_index(time_points, block_duration)
    enriched = block % 2 == 1

    if ResponseShape(shape) == ResponseShape.BOXCAR:
        return enriched.astype(float)

    dt = time_points - block * block_duration
    factor = np.zeros_like(time_points)

    # baseline blocks after the first one always follow an enriched block
    falling = ~enriched & (block > 0)

    if rise_time > 0:
        factor[enriched] = 1.0 - np.exp(-dt[enriched] / rise_time)
    else:
        logging.warning('Rise time {} is not positive, '
                        'using a step response instead'.format(rise_time))
        factor[enriched] = 1.0

    if fall_time > 0:
        factor[falling] = np.exp(-dt[falling] / fall_time)
    elif np.any(falling):
        logging.warning('Fall time {} is not positive, '
                        'using a step response instead'.format(fall_time))

    return factor


def get_stimulus_onsets(time_points, block_duration=BLOCK_DURATION):
    """Indices of the first sample of every enriched block."""
    block = get_block_index(time_points, block_duration)
    enriched = block % 2 == 1
    first = np.ones_like(enriched)
    first[1:] = block[1:] != block[:-1]
    return np.flatnonzero(enriched & first)


def get_normalized_time(time_points, total_duration=TOTAL_DURATION):
    return np.asarray(time_points, dtype=float) / total_duration


def get_polynomial_drift(time_points, linear, quadratic, cubic,
                         total_duration=TOTAL_DURATION):
    t = get_normalized_time(time_points, total_duration)
    return linear * t + quadratic * t**2 + cubic * t**3


def extract_end_tidal(values, time_points, sample_rate, breathing_rate):
    """
    Pick the end-tidal points (per-breath maxima) of a CO2 trace.

    A sample qualifies when it is higher than both neighbours and strictly
    higher than every other sample within a half-window of
    ``max(2, points_per_breath / 4)`` samples on either side.

    Returns
    -------
    times, values : np.ndarray
    """
    values = np.asarray(values, dtype=float)
    time_points = np.asarray(time_points, dtype=float)

    points_per_breath = sample_rate * 60.0 / breathing_rate
    half_window = max(2, int(points_per_breath / 4))

    # plateaus come back as candidates too, they fail the strict test below
    candidates, _ = signal.find_peaks(values)

    keep = []
    for i in candidates:
        start = max(0, i - half_window)
        end = min(len(values), i + half_window + 1)
        window = np.delete(values[start:end], i - start)
        if np.all(values[i] > window):
            keep.append(i)

    keep = np.array(keep, dtype=int)
    return time_points[keep], values[keep]


def get_display_range(series, baseline, dynamic=True, margin=50.0):
    """
    Vertical range for the MRI plot.

    Fixed at ``baseline +/- margin`` unless `dynamic`, in which case the
    range spans the given series with a 10% buffer. Falls back to the
    fixed range if nothing is shown or the span is below 1.0.
    """
    default = (baseline - margin, baseline + margin)

    if not dynamic:
        return default

    series = [np.asarray(s, dtype=float) for s in series if s is not None and len(s) > 0]
    if len(series) == 0:
        return default

    values = np.concatenate(series)
    low, high = values.min(), values.max()

    if high - low < 1.0:
        return default

    buffer = (high - low) * 0.1
    return (low - buffer, high + buffer)


def get_ss(timeseries):
    return ((timeseries - timeseries.mean(0))**2).sum(0)
