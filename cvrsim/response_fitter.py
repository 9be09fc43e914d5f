from .regressors import (
    Event,
    Drift,
    Intercept,
    DRIFT_LABELS,
)
import numpy as np
import pandas as pd
from .config import AnalysisModel
from .glm import solve_glm
from .utils import get_ss


BETA_NAMES = {'constant': 'Constant Term',
              'linear': 'Linear Drift',
              'quadratic': 'Quadratic Drift',
              'cubic': 'Cubic Drift'}


class ResponseFitter:
    """
    ResponseFitter estimates the response to the stimulus blocks in an MRI
    signal, together with polynomial drift, using a general linear model.
    """

    def __init__(
        self,
        input_signal,
        time_points,
        sample_duration=None,
        **kwargs
        ):
        """
        Initialize a ResponseFitter object.

        Parameters
        ----------
        input_signal : np.ndarray (n_timepoints,)
            The MRI signal to be modelled.

        time_points : np.ndarray (n_timepoints,)
            Acquisition times of `input_signal`, in seconds.

        sample_duration : float, optional
            Spacing of the samples (seconds). Derived from `time_points`
            if not given.

        **kwargs : dict
            Additional attributes to be stored in the ResponseFitter object.
        """
        for key, value in kwargs.items():
            setattr(self, key, value)

        self.input_signal = np.asarray(input_signal, dtype=float)
        self.time_points = np.asarray(time_points, dtype=float)

        assert self.input_signal.shape[0] == self.time_points.shape[0], \
            'input_signal and time_points need to have the same length'

        if sample_duration is None:
            sample_duration = self.time_points[1] - self.time_points[0]

        self.sample_duration = sample_duration

        self.X = pd.DataFrame(index=pd.Index(self.time_points, name='time'))
        self.events = {}
        self.has_intercept = False
        self.betas = np.zeros(0)

    @classmethod
    def from_configuration(cls, config, input_signal, time_points):
        """Set up the model selected in `config`: the response regressor(s)
        followed by the enabled drift terms."""
        fitter = cls(input_signal,
                     time_points,
                     sample_duration=config.mri_sampling_interval)

        fitter.add_event('stimulus',
                         basis_set=config.analysis_model,
                         rise_time=config.analysis_rise_time,
                         fall_time=config.analysis_fall_time,
                         coverage_duration=config.fir_coverage_duration)

        if config.include_constant_term:
            fitter.add_intercept()

        for order, flag in ((1, config.include_linear_term),
                            (2, config.include_quadratic_term),
                            (3, config.include_cubic_term)):
            if flag:
                fitter.add_drift(order)

        return fitter

    def add_intercept(self, name='constant'):
        intercept = Intercept(name, self)
        self._add_regressor(intercept)
        self.has_intercept = True

    def add_drift(self, order, name=None):
        if name is None:
            name = DRIFT_LABELS[order]
        self._add_regressor(Drift(name, self, order))

    def _add_regressor(self, regressor):
        regressor.create_design_matrix()

        if self.X.shape[1] == 0:
            self.X = regressor.X.copy()
        else:
            self.X = pd.concat([self.X, regressor.X], axis=1)

        self.X.columns.names = regressor.X.columns.names

    def add_event(
        self,
        event_name,
        basis_set='boxcar',
        rise_time=None,
        fall_time=None,
        coverage_duration=None,
        n_regressors=None,
        **kwargs):

        """
        create design matrix for the stimulus response.

        Parameters
        ----------
        event_name : string
            Name of the event, used as key to lookup this event's
            characteristics

        **kwargs : dict
            see the Event constructor method.

        """

        assert event_name not in self.X.columns.get_level_values(0), \
            f"The event_name {event_name} is already in use"

        assert len(self.events) == 0 and self.X.shape[1] == 0, \
            "The stimulus response has to be the first block of the design matrix"

        ev = Event(
            name=event_name,
            fitter=self,
            basis_set=basis_set,
            rise_time=rise_time,
            fall_time=fall_time,
            coverage_duration=coverage_duration,
            n_regressors=n_regressors,
            **kwargs
        )

        self._add_regressor(ev)

        self.events[event_name] = ev

    @property
    def n_response_regressors(self):
        return sum(ev.n_regressors for ev in self.events.values())

    @property
    def is_fir(self):
        return any(ev.basis_set == AnalysisModel.FIR for ev in self.events.values())

    def fit(self):
        """Regress the design matrix on the input signal.

        Stores the beta weights in `self.betas`; these are empty when the
        design matrix is singular.
        """
        self.betas = solve_glm(self.X.values, self.input_signal)
        return self.betas

    def is_fitted(self):
        return len(self.betas) == self.X.shape[1] and self.X.shape[1] > 0

    def predict_from_design_matrix(self, X=None):
        """
        predict a signal given a design matrix. Returns zeros if the
        model could not be fitted.
        """
        if X is None:
            X = self.X

        if not self.is_fitted():
            return np.zeros(X.shape[0])

        assert X.shape[1] == self.betas.shape[0], \
            """designmatrix needs to have the same number of regressors
                    as the betas already calculated"""

        return np.asarray(X, dtype=float) @ self.betas

    def get_residuals(self):
        if not self.is_fitted():
            return np.zeros_like(self.input_signal)

        return self.input_signal - self.predict_from_design_matrix()

    def get_detrended_signal(self):
        """The input signal with the drift terms removed.

        For FIR models every column after the FIR block and the constant
        is removed. For boxcar and exponential models every column from
        the third one on is removed, so with the constant switched off the
        linear term stays in.
        """
        if not self.is_fitted():
            return self.input_signal.copy()

        if self.is_fir:
            first_drift = self.n_response_regressors + (1 if self.has_intercept else 0)
        else:
            first_drift = 2

        X = self.X.values[:, first_drift:]
        trend = X @ self.betas[first_drift:]

        return self.input_signal - trend

    def get_rsq(self):
        """
        calculate the rsq of a given fit.
        """
        if not self.is_fitted():
            return 0.0

        ss = get_ss(self.input_signal)
        if ss <= 0:
            return 0.0

        sse = (self.get_residuals()**2).sum()
        return 1 - sse / ss

    def get_beta_labels(self):
        labels = []
        for ev in self.events.values():
            if ev.basis_set == AnalysisModel.FIR:
                labels += [f'FIR {t:g} s' for t in ev.get_regressor_times()]
            else:
                labels.append('Stimulus Response')

        for _, regressor in self.X.columns[self.n_response_regressors:]:
            labels.append(BETA_NAMES.get(regressor, regressor))

        return labels

    def get_betas(self):
        if not self.is_fitted():
            return pd.Series(dtype=float, name='beta')

        return pd.Series(self.betas, index=self.X.columns, name='beta')
