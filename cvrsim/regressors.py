#!/usr/bin/env python
# encoding: utf-8
"""
regressors

"""

import numpy as np
import pandas as pd
import warnings
from .config import AnalysisModel
from .utils import (
    get_response_factor,
    get_stimulus_onsets,
    get_normalized_time,
)


DRIFT_LABELS = {0: 'constant',
                1: 'linear',
                2: 'quadratic',
                3: 'cubic'}


def _create_fir_basis(time_points, n_regressors):
    """One column per post-onset sample: column k is 1.0 exactly k samples
    after every stimulus onset."""

    regressor_labels = [f'fir_{d}' for d in np.arange(n_regressors)]
    n_timepoints = len(time_points)

    fir = np.zeros((n_timepoints, n_regressors))

    for onset in get_stimulus_onsets(time_points):
        k = np.arange(min(n_regressors, n_timepoints - onset))
        fir[onset + k, k] = 1.0

    return pd.DataFrame(fir,
                        index=time_points,
                        columns=regressor_labels)


def _create_response_basis(time_points, basis_set, rise_time, fall_time):
    response = get_response_factor(time_points,
                                   basis_set.value,
                                   rise_time,
                                   fall_time)

    return pd.DataFrame(response[:, np.newaxis],
                        index=time_points,
                        columns=[str(basis_set.value)])


class Regressor():
    def __init__(self, name, fitter):
        self.name = name
        self.fitter = fitter

    def create_design_matrix(self):
        pass

    def _label_columns(self, regressor_type):
        self.X.columns = pd.MultiIndex.from_product(
            [[regressor_type], self.X.columns],
            names=['regressor type', 'regressor']
        )
        self.X.index = pd.Index(self.fitter.time_points, name='time')


class Drift(Regressor):
    """Polynomial drift, (t / total duration) ** order."""

    def __init__(self, name, fitter, order):
        super().__init__(name, fitter)

        if order not in DRIFT_LABELS:
            raise ValueError(f'Drift order must be one of {list(DRIFT_LABELS)}, got {order}')

        self.order = order

    def create_design_matrix(self):
        t = get_normalized_time(self.fitter.time_points)
        self.X = pd.DataFrame({DRIFT_LABELS[self.order]: t ** self.order})
        self._label_columns('drift')


class Intercept(Drift):
    def __init__(self, name, fitter):
        super().__init__(name, fitter, order=0)


class Event(Regressor):
    """Event encapsulates the regressors that model the response to the
    stimulus blocks. The response can be modelled with a fixed shape
    (boxcar or exponential) or with one regressor per post-onset sample
    (FIR), which makes no assumption about its shape."""

    allowed_basissets = [m.value for m in AnalysisModel]

    def __init__(
        self,
        name,
        fitter,
        basis_set='boxcar',
        rise_time=None,
        fall_time=None,
        coverage_duration=None,
        n_regressors=None):

        """ Initialize an Event.

        Parameters
        ----------
        fitter : ResponseFitter object
            the response fitter that provides the time points of the signal.

        basis_set : string ['boxcar', 'exponential', 'fir']
            basis set to use in the fitting.

        rise_time, fall_time : float
            time constants of the exponential basis set, in seconds

        coverage_duration : float
            for the FIR basis set, the post-onset duration (seconds) covered
            by the regressors

        n_regressors : int, optional
            for the FIR basis set, overrides the number of regressors
            derived from `coverage_duration`.

        """
        super().__init__(name, fitter)

        if str(getattr(basis_set, 'value', basis_set)) not in self.allowed_basissets:
            raise ValueError(f"Requested basis set '{basis_set}' not available. "
                             f"Must be one of {self.allowed_basissets}")

        self.basis_set = AnalysisModel(basis_set)
        self.rise_time = rise_time
        self.fall_time = fall_time
        self.sample_duration = self.fitter.sample_duration

        if self.basis_set == AnalysisModel.FIR:
            if n_regressors is None:
                if coverage_duration is None:
                    raise Exception('Please provide the FIR coverage duration!')
                n_regressors = int(np.floor(coverage_duration / self.sample_duration + 0.5))

            if n_regressors < 1:
                warnings.warn(f'FIR coverage of {coverage_duration} s is shorter than one '
                              f'sample; using a single FIR regressor')
                n_regressors = 1

            if n_regressors > len(self.fitter.time_points):
                warnings.warn(f'Number of FIR regressors ({n_regressors}) is larger than the '
                              f'number of timepoints ({len(self.fitter.time_points)})')

            self.n_regressors = n_regressors

        else:
            if self.basis_set == AnalysisModel.EXPONENTIAL and \
                    (rise_time is None or fall_time is None):
                raise Exception('Please provide rise and fall times for the exponential basis set!')

            self.n_regressors = 1

    def create_design_matrix(self):
        """
        create_design_matrix creates the columns of the design matrix that
        model the stimulus response.
        """
        self.X = self.get_basis_function()
        self._label_columns(self.name)

    def get_basis_function(self):
        time_points = self.fitter.time_points

        if self.basis_set == AnalysisModel.FIR:
            return _create_fir_basis(time_points, self.n_regressors)

        return _create_response_basis(time_points,
                                      self.basis_set,
                                      self.rise_time,
                                      self.fall_time)

    def get_regressor_times(self):
        """Post-onset time of every FIR regressor (seconds)."""
        return np.arange(self.n_regressors) * self.sample_duration
