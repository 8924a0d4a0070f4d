from .errors import ConfigurationError, InputError, KMeansError
from .kmeans import BestResult, RestartKMeans

__all__ = [
    "BestResult",
    "ConfigurationError",
    "InputError",
    "KMeansError",
    "RestartKMeans",
]
