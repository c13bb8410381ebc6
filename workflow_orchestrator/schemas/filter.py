"""Filter tree and introspection schemas used to build data index queries."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter
from typing_extensions import Annotated

ProcessType = Literal["ProcessDefinition", "ProcessInstance"]


class FieldFilterOperator(str, Enum):
    EQ = "EQ"
    GT = "GT"
    GTE = "GTE"
    LT = "LT"
    LTE = "LTE"
    IN = "IN"
    IS_NULL = "IS_NULL"
    LIKE = "LIKE"
    BETWEEN = "BETWEEN"
    CONTAINS = "CONTAINS"
    CONTAINS_ALL = "CONTAINS_ALL"
    CONTAINS_ANY = "CONTAINS_ANY"


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class TypeName(str, Enum):
    """GraphQL argument type names reported by data index introspection."""

    STRING = "StringArgument"
    ID = "IdArgument"
    DATE = "DateArgument"


class FieldFilter(BaseModel):
    kind: Literal["field"] = Field(default="field", exclude=True)
    field: str = Field(..., min_length=1)
    operator: FieldFilterOperator
    value: Any = None


class LogicalFilter(BaseModel):
    kind: Literal["logical"] = Field(default="logical", exclude=True)
    operator: LogicalOperator
    filters: List[Filter] = Field(..., min_length=1)


class NestedFilter(BaseModel):
    kind: Literal["nested"] = Field(default="nested", exclude=True)
    field: str = Field(..., min_length=1)
    nested: Filter


def _filter_kind(value: Any) -> Optional[str]:
    # Raw JSON carries no tag, so the variant is decided here once.
    if isinstance(value, dict):
        if "filters" in value:
            return "logical"
        if "nested" in value:
            return "nested"
        return "field"
    return getattr(value, "kind", None)


Filter = Annotated[
    Union[
        Annotated[FieldFilter, Tag("field")],
        Annotated[LogicalFilter, Tag("logical")],
        Annotated[NestedFilter, Tag("nested")],
    ],
    Discriminator(_filter_kind),
]

LogicalFilter.model_rebuild()
NestedFilter.model_rebuild()

_FILTER_ADAPTER: TypeAdapter[Filter] = TypeAdapter(Filter)


def parse_filter(payload: Any) -> Union[FieldFilter, LogicalFilter, NestedFilter]:
    """Validate a JSON-like filter tree into its tagged variants."""

    return _FILTER_ADAPTER.validate_python(payload)


class FieldDescriptor(BaseModel):
    """One filterable input field of a ``<Type>Argument`` GraphQL type."""

    model_config = ConfigDict(frozen=True)

    name: str
    type_name: Optional[str] = None
    kind: Optional[str] = None
    of_type: Optional[Dict[str, Any]] = None
