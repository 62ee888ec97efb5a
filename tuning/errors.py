# Error types raised by the tuning harness


class TuningError(Exception):
    """Base class for tuning harness errors."""
    pass


class InvalidSizeError(TuningError):
    """Raised when a requested training size cannot be taken from the dataset."""
    pass


class InvalidFoldCountError(TuningError):
    """Raised when the number of folds is incompatible with the data."""
    pass


class EmptyGridError(TuningError):
    """Raised when a hyperparameter grid expands to zero candidates."""
    pass


class AllCandidatesFailedError(TuningError):
    """Raised when no candidate completed a single resample."""
    pass


class UnknownModelError(TuningError, ValueError):
    """Raised when a model family is not registered."""
    pass
