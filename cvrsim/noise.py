import numpy as np


def make_rng(seed=None):
    """Create a NumPy RNG (deterministic when a seed is given)."""
    if seed is None:
        return np.random.default_rng()
    return np.random.default_rng(int(seed))


def box_muller(rng, n):
    """Draw `n` standard-normal values with the Box-Muller transform."""
    # u1 on (0, 1] so the log stays finite
    u1 = 1.0 - rng.random(n)
    u2 = rng.random(n)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


class NoiseCache:
    """
    Keeps one realization of normalized (mean 0, sd 1) Gaussian noise for
    the MRI series, so that changing only the noise amplitude rescales the
    same realization instead of drawing a new one.
    """

    def __init__(self, seed=None, rng=None):
        if rng is None:
            rng = make_rng(seed)
        self.rng = rng
        self.noise = np.zeros(0)

    def __len__(self):
        return len(self.noise)

    def matches(self, sample_count):
        return len(self.noise) > 0 and len(self.noise) == sample_count

    def ensure(self, sample_count, force_regenerate=False):
        """
        Return the cached noise sequence, drawing a new one when the cache
        is empty, has the wrong length or `force_regenerate` is set.

        Parameters
        ----------
        sample_count : int
            Number of MRI samples the noise has to cover.

        force_regenerate : bool, optional
            Discard the cached realization and draw a fresh one.

        Returns
        -------
        noise : np.ndarray (sample_count,)
        """
        if force_regenerate or not self.matches(sample_count):
            self.noise = box_muller(self.rng, int(sample_count))

        return self.noise

    def clear(self):
        self.noise = np.zeros(0)
