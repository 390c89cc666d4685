"""Index-to-configuration decoding."""

from .decoder import DecodeOutcome, Decoder
from .errors import (
    DecodeError,
    IndexOutOfRangeError,
    InternalInvariantViolation,
    PermutationUnresolved,
    PlacementImpossible,
    PreconditionViolation,
    TableConfigurationError,
)
from .tables import DecodeTables, load_tables, tables_from_dict
from .tree import DecisionTree, TreeBuilder, load_tree, navigate, tree_from_dict


__all__ = [
    "DecodeError",
    "DecodeOutcome",
    "DecodeTables",
    "Decoder",
    "DecisionTree",
    "IndexOutOfRangeError",
    "InternalInvariantViolation",
    "PermutationUnresolved",
    "PlacementImpossible",
    "PreconditionViolation",
    "TableConfigurationError",
    "TreeBuilder",
    "load_tables",
    "load_tree",
    "navigate",
    "tables_from_dict",
    "tree_from_dict",
]
