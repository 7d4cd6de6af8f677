"""
Operations layer.

Transport-agnostic functions shared by the CLIs. Each takes an
:class:`OperationContext` and returns an :class:`OperationResult`; none of
them raise for expected failures.
"""

from autoflow.ops.context import OperationContext
from autoflow.ops.result import OperationError, OperationResult, start_timer

__all__ = ["OperationContext", "OperationError", "OperationResult", "start_timer"]
