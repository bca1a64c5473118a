"""
Errors Module

Exception taxonomy for batch column placement.

Run-level errors (InputError, DetectionFailure) end a batch without touching
the model. Host errors (derivation, activation, creation) are raised per item
and recorded in the batch report by the caller.
"""


class ColumnPlacerError(RuntimeError):
    """Base class for all column placement errors"""


class InputError(ColumnPlacerError, ValueError):
    """No usable segment selection, or the user cancelled before any mutation"""


class DetectionFailure(ColumnPlacerError):
    """No closed rectangle could be built from the given segments"""

    def __init__(self, segment_count: int):
        self.segment_count = segment_count
        super().__init__(
            f"Could not detect any complete rectangles from the {segment_count} selected lines"
        )


class NestedMutationScopeError(ColumnPlacerError):
    """A mutation scope was requested while another one is still open"""


class MutationScopeError(ColumnPlacerError):
    """A mutating call was made outside an open scope, or on a closed scope"""


class TemplateDerivationError(ColumnPlacerError):
    """A sized variant could not be derived from a base template"""


class ActivationError(ColumnPlacerError):
    """A template could not be activated"""


class CreationError(ColumnPlacerError):
    """The host rejected element creation"""


class InvalidStateTransition(ColumnPlacerError):
    """A batch run attempted an illegal state transition"""


class TemplateLoadError(ColumnPlacerError):
    """A template library file could not be read"""
