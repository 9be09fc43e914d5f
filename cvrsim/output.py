import copy
from dataclasses import dataclass, field
import numpy as np
import pandas as pd
from .config import TOTAL_DURATION


def _empty():
    return np.zeros(0)


@dataclass
class SimulationOutput:
    """Signals and model results of one simulation run.

    Arrays sharing a time axis (`co2_*` with `co2_time_points`, `mri_*`
    with `mri_time_points`) always have the same length.
    """

    co2_time_points: np.ndarray = field(default_factory=_empty)
    co2_raw_signal: np.ndarray = field(default_factory=_empty)
    co2_block_pattern: np.ndarray = field(default_factory=_empty)
    end_tidal_times: np.ndarray = field(default_factory=_empty)
    end_tidal_values: np.ndarray = field(default_factory=_empty)

    mri_time_points: np.ndarray = field(default_factory=_empty)
    mri_raw_signal: np.ndarray = field(default_factory=_empty)
    mri_model_signal: np.ndarray = field(default_factory=_empty)
    mri_detrended_signal: np.ndarray = field(default_factory=_empty)
    mri_residual_signal: np.ndarray = field(default_factory=_empty)
    mri_block_pattern: np.ndarray = field(default_factory=_empty)

    design_matrix: pd.DataFrame = field(default_factory=pd.DataFrame)
    betas: np.ndarray = field(default_factory=_empty)
    beta_labels: list = field(default_factory=list)

    percent_change: float = 0.0
    fir_response_magnitude: float = 0.0
    fir_peak_time: float = 0.0
    snr: float = 0.0
    cnr: float = 0.0
    rsq: float = 0.0

    snapshot: tuple = None
    change_category: object = None

    def copy(self):
        return copy.deepcopy(self)

    @property
    def has_model(self):
        return len(self.betas) > 0

    def get_co2_dataframe(self):
        return pd.DataFrame({'co2': self.co2_raw_signal,
                             'block': self.co2_block_pattern},
                            index=pd.Index(self.co2_time_points, name='time'))

    def get_end_tidal_dataframe(self):
        return pd.DataFrame({'end_tidal': self.end_tidal_values},
                            index=pd.Index(self.end_tidal_times, name='time'))

    def get_mri_dataframe(self):
        return pd.DataFrame({'signal': self.mri_raw_signal,
                             'model': self.mri_model_signal,
                             'detrended': self.mri_detrended_signal,
                             'residual': self.mri_residual_signal,
                             'block': self.mri_block_pattern},
                            index=pd.Index(self.mri_time_points, name='time'))

    def get_betas(self):
        return pd.Series(self.betas,
                         index=pd.Index(self.beta_labels[:len(self.betas)], name='regressor'),
                         name='beta',
                         dtype=float)

    def check_consistency(self):
        """Raise a ValueError if the time axes or the arrays on them are
        inconsistent."""
        axes = {'co2_time_points': ['co2_raw_signal', 'co2_block_pattern'],
                'mri_time_points': ['mri_raw_signal',
                                    'mri_model_signal',
                                    'mri_detrended_signal',
                                    'mri_residual_signal',
                                    'mri_block_pattern']}

        for axis_name, names in axes.items():
            axis = getattr(self, axis_name)

            if len(axis) == 0:
                continue

            if np.any(np.diff(axis) <= 0):
                raise ValueError(f'{axis_name} is not strictly increasing')

            if axis[-1] != TOTAL_DURATION:
                raise ValueError(f'{axis_name} ends at {axis[-1]}, not {TOTAL_DURATION}')

            for name in names:
                if len(getattr(self, name)) != len(axis):
                    raise ValueError(f'{name} has {len(getattr(self, name))} samples, '
                                     f'{axis_name} has {len(axis)}')

        if len(self.end_tidal_times) != len(self.end_tidal_values):
            raise ValueError('end_tidal_times and end_tidal_values differ in length')
