import logging
import numpy as np
from .config import Configuration
from .noise import NoiseCache, make_rng
from .output import SimulationOutput
from .recompute import (recompute,
                        regenerate_noise,
                        update_co2_phase,
                        reanalyze)


class Simulator(object):

    """Holds the state that outlives a single update (configuration,
    noise realization, CO2 modulation phase and the latest output) and
    tells subscribers whenever a new output is ready.
    """

    def __init__(self, config=None, seed=None):
        """
        Parameters
        ----------
        config : Configuration, optional
            Settings to simulate; defaults are used if not given. The
            object is shared, not copied: edit it and call `recompute`.

        seed : int, optional
            Seed for the noise and CO2 phase draws.
        """
        if config is None:
            config = Configuration()

        self.config = config
        self.rng = make_rng(seed)
        self.noise_cache = NoiseCache(rng=self.rng)
        self.co2_phase = 0.0
        self.output = SimulationOutput()
        self._subscribers = []

    def subscribe(self, callback):
        """Call `callback(output)` after every update."""
        self._subscribers.append(callback)
        return callback

    def unsubscribe(self, callback):
        self._subscribers.remove(callback)

    def _publish(self, output):
        self.output = output
        for callback in list(self._subscribers):
            callback(output)
        return output

    def _previous(self):
        return self.output if self.output.snapshot is not None else None

    def recompute(self):
        """Update the output after the configuration was edited."""
        return self._publish(recompute(self.config,
                                       self._previous(),
                                       self.noise_cache,
                                       self.co2_phase))

    def regenerate_noise(self):
        return self._publish(regenerate_noise(self.config,
                                              self._previous(),
                                              self.noise_cache,
                                              self.co2_phase))

    def randomize_co2_phase(self):
        self.co2_phase = self.rng.uniform(0.0, 2.0 * np.pi)
        logging.info('New CO2 modulation phase: {:.3f} rad'.format(self.co2_phase))
        return self._publish(update_co2_phase(self.config,
                                              self._previous(),
                                              self.noise_cache,
                                              self.co2_phase))

    def reanalyze_only(self):
        return self._publish(reanalyze(self.config,
                                       self._previous(),
                                       self.noise_cache,
                                       self.co2_phase))

    def reset_to_defaults(self):
        """Restore the default configuration and resimulate."""
        self.config.reset_to_defaults()
        return self.recompute()
