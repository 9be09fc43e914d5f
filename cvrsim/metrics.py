from collections import namedtuple
import numpy as np
from .config import AnalysisModel, FIRResponseMethod


Metrics = namedtuple('Metrics', ['percent_change',
                                 'fir_response_magnitude',
                                 'fir_peak_time',
                                 'snr',
                                 'cnr'])

EMPTY_METRICS = Metrics(0.0, 0.0, 0.0, 0.0, 0.0)


def get_fir_window_indices(n_regressors, sample_interval, start, end):
    """
    FIR columns whose post-onset time lies within [start, end] (both
    inclusive), clamped to the available columns.

    Returns
    -------
    first, last : int
        Inclusive column range; ``first > last`` for an empty window.
    """
    if n_regressors < 1:
        return 0, -1

    first = int(np.ceil(start / sample_interval - 1e-9))
    last = int(np.floor(end / sample_interval + 1e-9))

    first = min(max(first, 0), n_regressors - 1)
    last = min(max(last, 0), n_regressors - 1)

    return first, last


def get_fir_response_magnitude(betas,
                               n_regressors,
                               sample_interval,
                               method=FIRResponseMethod.MAXIMUM,
                               window=(0.0, 0.0)):
    """
    Summarize the FIR beta weights into one response magnitude.

    Parameters
    ----------
    betas : np.array
        Beta weights of the full design; the FIR regressors are the first
        `n_regressors` of them.

    method : FIRResponseMethod or str
        'maximum' : largest |beta|
        'mean' : mean |beta|
        'mean_positive' : mean of the positive betas (0 if there are none)
        'time_window' : mean |beta| over the regressors within `window`

    window : tuple (start, end)
        Post-onset times, in seconds, for the 'time_window' method.

    Returns
    -------
    magnitude, peak_time : float
        `peak_time` is the post-onset time of the largest |beta|.
    """
    fir_betas = np.asarray(betas, dtype=float)[:n_regressors]

    if len(fir_betas) == 0:
        return 0.0, 0.0

    abs_betas = np.abs(fir_betas)
    peak_ix = int(np.argmax(abs_betas))
    peak_time = peak_ix * sample_interval

    method = FIRResponseMethod(method)

    if method == FIRResponseMethod.MAXIMUM:
        magnitude = abs_betas[peak_ix]

    elif method == FIRResponseMethod.MEAN:
        magnitude = abs_betas.mean()

    elif method == FIRResponseMethod.MEAN_POSITIVE:
        positive = fir_betas[fir_betas > 0]
        magnitude = positive.mean() if len(positive) > 0 else 0.0

    elif method == FIRResponseMethod.TIME_WINDOW:
        first, last = get_fir_window_indices(len(fir_betas), sample_interval, *window)
        if first > last:
            magnitude = 0.0
        else:
            magnitude = abs_betas[first:last + 1].mean()

    return float(magnitude), float(peak_time)


def get_percent_change(response, constant):
    if constant is None or response is None:
        return 0.0

    baseline = abs(constant)
    if baseline <= 0:
        return 0.0

    return 100.0 * abs(response) / baseline


def get_noise_rms(residuals):
    residuals = np.asarray(residuals, dtype=float)
    if len(residuals) == 0:
        return 0.0
    return float(np.sqrt(np.mean(residuals**2)))


def _ratio(numerator, noise_rms):
    if numerator is None or numerator <= 0 or noise_rms <= 0:
        return 0.0
    return numerator / noise_rms


def get_snr(constant, noise_rms):
    """Baseline signal over residual RMS."""
    if constant is None:
        return 0.0
    return _ratio(abs(constant), noise_rms)


def get_cnr(contrast, noise_rms):
    """Response magnitude over residual RMS."""
    if contrast is None:
        return 0.0
    return _ratio(abs(contrast), noise_rms)


def compute_metrics(config, betas, residuals, include_constant=None):
    """
    Derive percent signal change, FIR response magnitude, SNR and CNR from
    a fitted model.

    Parameters
    ----------
    config : Configuration
        Analysis settings the model was built with.

    betas : np.array
        Fitted beta weights; an empty array means the fit failed and all
        metrics are zero.

    residuals : np.array
        Residual time series of the fit.

    include_constant : bool, optional
        Whether the design holds a constant term. Defaults to
        `config.include_constant_term`.

    Returns
    -------
    metrics : Metrics
    """
    betas = np.asarray(betas, dtype=float)

    if len(betas) == 0:
        return EMPTY_METRICS

    if include_constant is None:
        include_constant = config.include_constant_term

    noise_rms = get_noise_rms(residuals)

    if AnalysisModel(config.analysis_model) == AnalysisModel.FIR:
        n_fir = config.fir_n_regressors
        magnitude, peak_time = get_fir_response_magnitude(
            betas,
            n_fir,
            config.mri_sampling_interval,
            method=config.fir_response_method,
            window=(config.fir_window_start, config.fir_window_end))
        constant_ix = n_fir
        contrast = magnitude
    else:
        magnitude, peak_time = 0.0, 0.0
        constant_ix = 1
        contrast = betas[0]

    if include_constant and constant_ix < len(betas):
        constant = betas[constant_ix]
    else:
        constant = None

    return Metrics(percent_change=get_percent_change(contrast, constant),
                   fir_response_magnitude=magnitude,
                   fir_peak_time=peak_time,
                   snr=get_snr(constant, noise_rms),
                   cnr=get_cnr(contrast, noise_rms))
