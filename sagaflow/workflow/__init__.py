"""Declarative workflow definitions and their interpreter."""

from .catalog import WorkflowCatalog, default_catalog, load_definitions, place_order_definition
from .definition import (
    Activity,
    Conditional,
    Fault,
    Invoke,
    Receive,
    Reply,
    WorkflowDefinition,
)
from .expressions import Predicate, compile_predicate, resolve_path
from .interpreter import WorkflowInterpreter

__all__ = [
    "Activity",
    "Conditional",
    "Fault",
    "Invoke",
    "Predicate",
    "Receive",
    "Reply",
    "WorkflowCatalog",
    "WorkflowDefinition",
    "WorkflowInterpreter",
    "compile_predicate",
    "default_catalog",
    "load_definitions",
    "place_order_definition",
    "resolve_path",
]
