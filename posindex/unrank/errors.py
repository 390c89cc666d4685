from __future__ import annotations

from typing import Any, Dict, Optional


CALLER_ERROR = "caller_error"
CONFIGURATION_ERROR = "configuration_error"
INTERNAL_ERROR = "internal_error"


class DecodeError(Exception):
    """Base class for every failure raised while decoding an index.

    Attributes:
        kind (str): One of ``caller_error``, ``configuration_error`` or
            ``internal_error``. Callers driving many decodes use it to tell
            their own bad input apart from defects in the tree, the tables or
            the decoder.
        code (str): Stable machine readable identifier.
        context (Dict[str, Any]): Extra values useful in a log line.
    """

    kind = INTERNAL_ERROR
    code = "decode_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self, request_id: Optional[str] = None) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "type": self.kind,
        }
        if request_id is not None:
            payload["request_id"] = request_id
        return payload


class PreconditionViolation(DecodeError):
    """The index is not below the number of options at a decision point."""

    code = "precondition_violation"


class IndexOutOfRangeError(PreconditionViolation, ValueError):
    """The caller supplied an index outside ``[0, total)``."""

    kind = CALLER_ERROR
    code = "index_out_of_range"


class TableConfigurationError(DecodeError, ValueError):
    """The decision tree or the lookup tables are malformed."""

    kind = CONFIGURATION_ERROR
    code = "invalid_tables"


class InternalInvariantViolation(DecodeError):
    code = "internal_invariant"


class PlacementImpossible(InternalInvariantViolation):
    """No k-subset exists for the requested rank."""

    code = "placement_impossible"


class PermutationUnresolved(InternalInvariantViolation):
    """A combined permutation rank was not resolved, or a table entry is missing."""

    code = "permutation_unresolved"
