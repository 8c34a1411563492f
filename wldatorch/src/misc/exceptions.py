# Copyright 2020 Ville Vestman
# This file is licensed under the MIT license (see LICENSE.txt).

class LdaError(Exception):
    """Base exception for LDA transform estimation."""
    pass

class DimensionMismatchError(LdaError):
    """Raised when a vector or statistic does not have the dimension of the run."""
    pass

class InsufficientDataError(LdaError):
    """Raised when the accumulated statistics cannot support the requested computation."""
    pass

class SingularMatrixError(LdaError):
    """Raised when a matrix that has to be inverted or whitened is singular."""
    pass

class NonFiniteWeightError(LdaError):
    """Raised when a speaker-pair weight overflows."""
    pass

class ConfigurationError(LdaError):
    """Raised when settings or options are invalid."""
    pass
