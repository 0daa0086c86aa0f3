from .frames import SeriesMatrix
from .profile import SpectralProfile
from .results import SpectralStack

__all__ = [
    "SeriesMatrix",
    "SpectralProfile",
    "SpectralStack",
]
