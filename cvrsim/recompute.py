"""
recompute

Decides which stages of the simulation have to rerun after a configuration
change, and runs them. Every function here takes the previous output and
returns a new one; the previous output is never modified.
"""

from enum import Enum
import logging
from .config import (AnalysisModel,
                     DRIFT_TERM_FIELDS,
                     changed_fields)
from .metrics import compute_metrics
from .noise import NoiseCache
from .output import SimulationOutput
from .response_fitter import ResponseFitter
from .simulate import (get_co2_time_points,
                       get_mri_time_points,
                       simulate_co2_signal,
                       simulate_mri_signal)
from .utils import (get_block_pattern,
                    get_response_factor,
                    extract_end_tidal)


class ChangeCategory(Enum):
    INITIAL = 'initial'
    NO_CHANGE = 'no change'
    MODEL_TERMS = 'model terms'
    NOISE_AMPLITUDE = 'noise amplitude'
    CO2_VARIANCE = 'co2 variance'
    RESPONSE_SHAPE = 'response shape'
    ANALYSIS_MODEL = 'analysis model'
    FULL = 'full'
    # explicit actions
    REGENERATE_NOISE = 'regenerate noise'
    RANDOMIZE_CO2_PHASE = 'randomize co2 phase'
    REANALYZE = 'reanalyze'


MODEL_TERM_FIELDS = frozenset(DRIFT_TERM_FIELDS)

NOISE_AMPLITUDE_FIELDS = frozenset(['mri_noise_amplitude'])

CO2_VARIANCE_FIELDS = frozenset(['enable_co2_variance',
                                 'co2_variance_frequency',
                                 'co2_variance_amplitude',
                                 'co2_phase_variance'])

RESPONSE_SHAPE_FIELDS = frozenset(['response_shape',
                                   'response_rise_time',
                                   'response_fall_time'])

ANALYSIS_MODEL_FIELDS = frozenset(['analysis_model',
                                   'analysis_rise_time',
                                   'analysis_fall_time',
                                   'fir_coverage_duration',
                                   'fir_response_method',
                                   'fir_window_start',
                                   'fir_window_end'])


def classify_change(previous, current):
    """
    Classify the difference between two configuration snapshots.

    Categories are tested in priority order; the analysis-only categories
    are only chosen when nothing outside the analysis settings changed.

    Parameters
    ----------
    previous : ConfigurationSnapshot or None
        Snapshot the current output was computed from, None before the
        first run.

    current : ConfigurationSnapshot

    Returns
    -------
    category : ChangeCategory
    """
    if previous is None:
        return ChangeCategory.INITIAL

    changed = changed_fields(previous, current)

    if len(changed) == 0:
        return ChangeCategory.NO_CHANGE

    if changed & MODEL_TERM_FIELDS and \
            changed <= MODEL_TERM_FIELDS | ANALYSIS_MODEL_FIELDS:
        return ChangeCategory.MODEL_TERMS

    if changed == NOISE_AMPLITUDE_FIELDS:
        return ChangeCategory.NOISE_AMPLITUDE

    if changed <= CO2_VARIANCE_FIELDS:
        return ChangeCategory.CO2_VARIANCE

    if changed & RESPONSE_SHAPE_FIELDS:
        return ChangeCategory.RESPONSE_SHAPE

    if changed <= ANALYSIS_MODEL_FIELDS:
        return ChangeCategory.ANALYSIS_MODEL

    return ChangeCategory.FULL


def get_analysis_block_pattern(config, time_points):
    """Stimulus time course as assumed by the analysis model; the plain
    block pattern for FIR."""
    if AnalysisModel(config.analysis_model) == AnalysisModel.FIR:
        return get_block_pattern(time_points)

    return get_response_factor(time_points,
                               AnalysisModel(config.analysis_model).value,
                               config.analysis_rise_time,
                               config.analysis_fall_time)


def _synthesize_co2(output, config, co2_phase):
    output.co2_time_points = get_co2_time_points(config)
    output.co2_raw_signal = simulate_co2_signal(config,
                                                output.co2_time_points,
                                                co2_phase)


def _extract_end_tidal(output, config):
    output.end_tidal_times, output.end_tidal_values = extract_end_tidal(
        output.co2_raw_signal,
        output.co2_time_points,
        config.co2_sampling_rate,
        config.breathing_rate)


def _synthesize_mri(output, config, noise_cache, force_regenerate=False):
    output.mri_time_points = get_mri_time_points(config)
    noise = noise_cache.ensure(len(output.mri_time_points), force_regenerate)
    output.mri_raw_signal = simulate_mri_signal(config, output.mri_time_points, noise)


def _rescale_mri(output, config, noise_cache):
    """Recombine the cached noise with a new amplitude; the realization
    itself is left untouched."""
    if not noise_cache.matches(len(output.mri_time_points)):
        logging.warning('No cached noise for {} samples, drawing new noise'.format(
            len(output.mri_time_points)))
        return _synthesize_mri(output, config, noise_cache)

    output.mri_raw_signal = simulate_mri_signal(config,
                                                output.mri_time_points,
                                                noise_cache.noise)


def _build_block_patterns(output, config):
    output.co2_block_pattern = get_block_pattern(output.co2_time_points)
    output.mri_block_pattern = get_analysis_block_pattern(config, output.mri_time_points)


def _analyze(output, config):
    fitter = ResponseFitter.from_configuration(config,
                                               output.mri_raw_signal,
                                               output.mri_time_points)
    fitter.fit()

    output.design_matrix = fitter.X
    output.betas = fitter.betas
    output.beta_labels = fitter.get_beta_labels() if fitter.is_fitted() else []
    output.mri_model_signal = fitter.predict_from_design_matrix()
    output.mri_residual_signal = fitter.get_residuals()
    output.mri_detrended_signal = fitter.get_detrended_signal()
    output.rsq = fitter.get_rsq()

    metrics = compute_metrics(config,
                              fitter.betas,
                              output.mri_residual_signal,
                              include_constant=fitter.has_intercept)

    output.percent_change = metrics.percent_change
    output.fir_response_magnitude = metrics.fir_response_magnitude
    output.fir_peak_time = metrics.fir_peak_time
    output.snr = metrics.snr
    output.cnr = metrics.cnr


def _full(output, config, noise_cache, co2_phase, force_noise=False):
    _synthesize_co2(output, config, co2_phase)
    _synthesize_mri(output, config, noise_cache, force_regenerate=force_noise)
    _extract_end_tidal(output, config)
    _build_block_patterns(output, config)
    _analyze(output, config)


def _reanalyze(output, config, noise_cache, co2_phase):
    _build_block_patterns(output, config)
    _analyze(output, config)


def _rescale_noise(output, config, noise_cache, co2_phase):
    _rescale_mri(output, config, noise_cache)
    _build_block_patterns(output, config)
    _analyze(output, config)


def _update_co2(output, config, noise_cache, co2_phase):
    _synthesize_co2(output, config, co2_phase)
    _extract_end_tidal(output, config)
    _build_block_patterns(output, config)


def _fresh_noise(output, config, noise_cache, co2_phase):
    _synthesize_mri(output, config, noise_cache, force_regenerate=True)
    _build_block_patterns(output, config)
    _analyze(output, config)


def _nothing(output, config, noise_cache, co2_phase):
    pass


_STAGES = {
    ChangeCategory.INITIAL: _full,
    ChangeCategory.NO_CHANGE: _nothing,
    ChangeCategory.MODEL_TERMS: _reanalyze,
    ChangeCategory.NOISE_AMPLITUDE: _rescale_noise,
    ChangeCategory.CO2_VARIANCE: _update_co2,
    ChangeCategory.RESPONSE_SHAPE: _full,
    ChangeCategory.ANALYSIS_MODEL: _reanalyze,
    ChangeCategory.FULL: _full,
    ChangeCategory.REGENERATE_NOISE: _fresh_noise,
    ChangeCategory.RANDOMIZE_CO2_PHASE: _update_co2,
    ChangeCategory.REANALYZE: _reanalyze,
}


def _run(category, config, previous, noise_cache, co2_phase):
    snapshot = config.snapshot()

    if noise_cache is None:
        noise_cache = NoiseCache()

    if previous is None or previous.snapshot is None:
        output = SimulationOutput()
        if category != ChangeCategory.INITIAL:
            # an action before anything was simulated: simulate everything
            logging.info('No previous output; running a full simulation '
                         'for {}'.format(category.value))
            _full(output, config, noise_cache, co2_phase,
                  force_noise=category == ChangeCategory.REGENERATE_NOISE)
            category_stages = _nothing
        else:
            category_stages = _STAGES[category]
    else:
        output = previous.copy()
        category_stages = _STAGES[category]

        if category in (ChangeCategory.REGENERATE_NOISE,
                        ChangeCategory.RANDOMIZE_CO2_PHASE,
                        ChangeCategory.REANALYZE) and \
                previous.snapshot != snapshot:
            logging.info('Configuration changed since the last run; '
                         'running a full simulation before {}'.format(category.value))
            _full(output, config, noise_cache, co2_phase,
                  force_noise=category == ChangeCategory.REGENERATE_NOISE)
            category_stages = _nothing

    logging.info('Updating simulation ({})'.format(category.value))
    category_stages(output, config, noise_cache, co2_phase)

    output.snapshot = snapshot
    output.change_category = category

    return output


def recompute(config, previous=None, noise_cache=None, co2_phase=0.0):
    """
    Bring the simulation output up to date with `config`, rerunning only
    the stages affected by what changed since `previous` was computed.

    Parameters
    ----------
    config : Configuration
        Current settings. If every drift term is switched off, the constant
        term is switched back on (in place).

    previous : SimulationOutput, optional
        Output of the last run. A full simulation is run without it.

    noise_cache : NoiseCache, optional
        Normalized MRI noise kept across runs.

    co2_phase : float, optional
        Phase of the CO2 variance modulation.

    Returns
    -------
    output : SimulationOutput
    """
    config.validate()
    config.ensure_drift_terms()

    previous_snapshot = None if previous is None else previous.snapshot
    category = classify_change(previous_snapshot, config.snapshot())

    return _run(category, config, previous, noise_cache, co2_phase)


def regenerate_noise(config, previous=None, noise_cache=None, co2_phase=0.0):
    """Draw a new noise realization and redo the MRI signal and its
    analysis."""
    config.ensure_drift_terms()
    if noise_cache is not None:
        noise_cache.clear()
    return _run(ChangeCategory.REGENERATE_NOISE, config, previous, noise_cache, co2_phase)


def update_co2_phase(config, previous=None, noise_cache=None, co2_phase=0.0):
    """Regenerate the CO2 signal for a new variance-modulation phase."""
    config.ensure_drift_terms()
    return _run(ChangeCategory.RANDOMIZE_CO2_PHASE, config, previous, noise_cache, co2_phase)


def reanalyze(config, previous=None, noise_cache=None, co2_phase=0.0):
    """Rebuild the design matrix and refit, leaving the signals alone."""
    config.ensure_drift_terms()
    return _run(ChangeCategory.REANALYZE, config, previous, noise_cache, co2_phase)
