"""Error taxonomy shared by every stage."""


class DiagramError(Exception):
    """Base class for persistence diagram clustering errors."""


class InputError(DiagramError, ValueError):
    """The input diagrams make the clustering ill-posed."""


class ConfigError(DiagramError, ValueError):
    """Invalid configuration (bad K, out-of-range factor, unknown order)."""


class DeadlineExceeded(DiagramError):
    """The cooperative time limit passed. Carries no partial result."""


class NumericalDegeneracyWarning(RuntimeWarning):
    """The auction did not converge and the pair was solved exactly instead."""
