from importlib.metadata import version

__version__ = version("cvrsim")

from .config import Configuration
from .response_fitter import ResponseFitter
from .simulator import Simulator
from .recompute import recompute
