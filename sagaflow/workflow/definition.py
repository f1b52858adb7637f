"""Declarative workflow definitions."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from .expressions import compile_predicate


class _Activity(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.name or self.type  # type: ignore[attr-defined]


class Receive(_Activity):
    """Entry point of the workflow; accepts the input payload."""

    type: Literal["receive"] = "receive"
    operation: str
    message_type: Optional[str] = Field(default=None, alias="messageType")


class Invoke(_Activity):
    """Call ``service.operation`` with ``input_variable`` and bind the result.

    ``best_effort`` invokes record a failed result instead of aborting the run.
    """

    type: Literal["invoke"] = "invoke"
    service: str = Field(
        validation_alias=AliasChoices("service", "targetService"),
        serialization_alias="service",
    )
    operation: str
    input_variable: str = Field(alias="inputVariable")
    output_variable: Optional[str] = Field(default=None, alias="outputVariable")
    best_effort: bool = Field(default=False, alias="bestEffort")


class Conditional(_Activity):
    type: Literal["if"] = "if"
    condition: str
    then: List["Activity"] = Field(default_factory=list)
    else_: List["Activity"] = Field(default_factory=list, alias="else")

    @field_validator("condition")
    @classmethod
    def _compile(cls, v: str) -> str:
        compile_predicate(v)
        return v


class Fault(_Activity):
    type: Literal["throw"] = "throw"
    fault_name: str = Field(alias="faultName")


class Reply(_Activity):
    """Produce the run output.

    ``output`` maps output keys to values; a string value of the form
    ``${path}`` is looked up in the run scope. With no mapping the output is
    the current scope.
    """

    type: Literal["reply"] = "reply"
    operation: str
    message_type: Optional[str] = Field(default=None, alias="messageType")
    output: Dict[str, Any] = Field(default_factory=dict)


Activity = Annotated[
    Union[Receive, Invoke, Conditional, Fault, Reply], Field(discriminator="type")
]

Conditional.model_rebuild()


class WorkflowDefinition(BaseModel):
    """Immutable activity graph identified by ``name``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    version: str = "1.0"
    description: Optional[str] = None
    input_variable: str = Field(default="orderData", alias="inputVariable")
    variables: Dict[str, Any] = Field(default_factory=dict)
    activities: List[Activity] = Field(default_factory=list)

    def to_document(self) -> Dict[str, Any]:
        """Serialize in the declarative (camelCase) document format."""
        return self.model_dump(by_alias=True, mode="json")
