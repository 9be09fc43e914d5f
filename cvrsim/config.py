from collections import namedtuple
from dataclasses import dataclass, fields
from enum import Enum
import logging
import numpy as np

# Block-design paradigm
TOTAL_DURATION = 300.0  # seconds
BLOCK_DURATION = 60.0   # seconds, alternating baseline / enriched air

# (min, max) pCO2 in mmHg
NORMAL_AIR_CO2 = (0.0, 40.0)
ENRICHED_AIR_CO2 = (38.0, 45.0)  # 5% CO2 at 760 mmHg

SINGULAR_PIVOT_TOLERANCE = 1e-10


class ResponseShape(str, Enum):
    BOXCAR = 'boxcar'
    EXPONENTIAL = 'exponential'


class AnalysisModel(str, Enum):
    BOXCAR = 'boxcar'
    EXPONENTIAL = 'exponential'
    FIR = 'fir'


class FIRResponseMethod(str, Enum):
    MAXIMUM = 'maximum'
    MEAN = 'mean'
    MEAN_POSITIVE = 'mean_positive'
    TIME_WINDOW = 'time_window'


_ENUM_FIELDS = {
    'response_shape': ResponseShape,
    'analysis_model': AnalysisModel,
    'fir_response_method': FIRResponseMethod,
}

DRIFT_TERM_FIELDS = (
    'include_constant_term',
    'include_linear_term',
    'include_quadratic_term',
    'include_cubic_term',
)


@dataclass
class Configuration:
    """All simulation and analysis parameters of a run.

    The viewer mutates this object in place; the engine only ever reads
    it, through :meth:`snapshot`, once per recompute.
    """

    # Signal
    co2_sampling_rate: float = 10.0       # Hz
    breathing_rate: float = 15.0          # breaths per minute
    mri_sampling_interval: float = 2.0    # seconds
    mri_baseline_signal: float = 1200.0   # a.u.
    mri_response_amplitude: float = 25.0  # a.u.

    # Simulated response shape
    response_shape: ResponseShape = ResponseShape.BOXCAR
    response_rise_time: float = 8.0       # seconds
    response_fall_time: float = 12.0      # seconds

    # Analysis model
    analysis_model: AnalysisModel = AnalysisModel.BOXCAR
    analysis_rise_time: float = 8.0
    analysis_fall_time: float = 12.0
    fir_coverage_duration: float = 90.0
    fir_response_method: FIRResponseMethod = FIRResponseMethod.MAXIMUM
    fir_window_start: float = 30.0
    fir_window_end: float = 60.0

    # CO2 variance
    enable_co2_variance: bool = True
    co2_variance_frequency: float = 0.05  # Hz
    co2_variance_amplitude: float = 2.0   # mmHg
    co2_phase_variance: float = 0.1       # radians

    # MRI noise
    mri_noise_amplitude: float = 5.0
    enable_mri_noise: bool = True

    # Drift - CO2 (mmHg)
    co2_linear_drift: float = 1.0
    co2_quadratic_drift: float = 1.5
    co2_cubic_drift: float = 2.5
    enable_co2_drift: bool = True

    # Drift - MRI (percent of baseline)
    mri_linear_drift: float = 3.0
    mri_quadratic_drift: float = 3.0
    mri_cubic_drift: float = 4.0
    enable_mri_drift: bool = True

    # Detrending model
    include_constant_term: bool = True
    include_linear_term: bool = True
    include_quadratic_term: bool = True
    include_cubic_term: bool = True

    def __post_init__(self):
        self._coerce_enums()
        self.validate()

    def _coerce_enums(self):
        for name, enum_type in _ENUM_FIELDS.items():
            value = getattr(self, name)
            if not isinstance(value, enum_type):
                logging.warning('{} should be a {} (currently {!r})! Converting...'.format(
                    name, enum_type.__name__, value))
                setattr(self, name, enum_type(value))

    def validate(self):
        for name in ('co2_sampling_rate', 'breathing_rate', 'mri_sampling_interval'):
            if getattr(self, name) <= 0:
                raise ValueError(f'{name} must be positive (got {getattr(self, name)})')

        if self.fir_coverage_duration < 0:
            raise ValueError('fir_coverage_duration cannot be negative')

        if self.mri_noise_amplitude < 0:
            raise ValueError('mri_noise_amplitude cannot be negative')

    def reset_to_defaults(self):
        defaults = Configuration()
        for f in fields(self):
            setattr(self, f.name, getattr(defaults, f.name))

    def has_drift_terms(self):
        return any(getattr(self, name) for name in DRIFT_TERM_FIELDS)

    def ensure_drift_terms(self):
        """Switch the constant term back on when every drift term is off,
        so the design matrix never holds the block regressor alone.

        Returns True if the configuration was changed.
        """
        if self.has_drift_terms():
            return False

        logging.warning('All drift terms were disabled; '
                        'including the constant term in the model.')
        self.include_constant_term = True
        return True

    @property
    def fir_n_regressors(self):
        # halves round up: 90 s at 4 s gives 23 regressors
        return max(1, int(np.floor(self.fir_coverage_duration / self.mri_sampling_interval + 0.5)))

    def snapshot(self):
        self._coerce_enums()
        return ConfigurationSnapshot(
            **{f.name: getattr(self, f.name) for f in fields(self)})


ConfigurationSnapshot = namedtuple(
    'ConfigurationSnapshot', [f.name for f in fields(Configuration)])


def changed_fields(previous, current):
    """Names of the fields that differ between two snapshots."""
    return {name for name, old, new in zip(current._fields, previous, current)
            if old != new}
