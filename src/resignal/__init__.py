"""resignal: fine-grained reactive signals, computeds and effects for Python."""

from importlib.metadata import version as _version

__version__ = _version("resignal")

from resignal._tracking import NodeKind, is_batching, untracked
from resignal.errors import ResignalError, InvalidMutationError
from resignal.reactive import Signal, Reactive, signal, json_default, same_value
from resignal.computed import Computed, computed
from resignal.effect import Effect, effect, reaction, set_scheduler
from resignal.action import batch, action, transaction
# textual NOT auto-imported: opt-in only

__all__ = [
    "Signal",
    "Reactive",
    "signal",
    "Computed",
    "computed",
    "Effect",
    "effect",
    "reaction",
    "batch",
    "action",
    "transaction",
    "untracked",
    "is_batching",
    "set_scheduler",
    "json_default",
    "same_value",
    "NodeKind",
    "ResignalError",
    "InvalidMutationError",
]
