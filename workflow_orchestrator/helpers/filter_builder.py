"""Compile filter trees into data index GraphQL ``where`` fragments."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from workflow_orchestrator.schemas.filter import (
    FieldDescriptor,
    FieldFilter,
    FieldFilterOperator,
    LogicalFilter,
    NestedFilter,
    ProcessType,
    TypeName,
)


class FilterValidationError(ValueError):
    """Raised when a filter references an unknown field or unsupported operator."""


SUPPORTED_OPERATORS: List[FieldFilterOperator] = [
    FieldFilterOperator.EQ,
    FieldFilterOperator.LIKE,
    FieldFilterOperator.IN,
    FieldFilterOperator.IS_NULL,
    FieldFilterOperator.GT,
    FieldFilterOperator.GTE,
    FieldFilterOperator.LT,
    FieldFilterOperator.LTE,
    FieldFilterOperator.BETWEEN,
]

SUPPORTED_OPERATORS_BY_TYPE: Dict[str, List[FieldFilterOperator]] = {
    TypeName.STRING.value: [
        FieldFilterOperator.IN,
        FieldFilterOperator.LIKE,
        FieldFilterOperator.IS_NULL,
        FieldFilterOperator.EQ,
    ],
    TypeName.ID.value: [
        FieldFilterOperator.IN,
        FieldFilterOperator.IS_NULL,
        FieldFilterOperator.EQ,
    ],
    TypeName.DATE.value: [
        FieldFilterOperator.IS_NULL,
        FieldFilterOperator.EQ,
        FieldFilterOperator.GT,
        FieldFilterOperator.GTE,
        FieldFilterOperator.LT,
        FieldFilterOperator.LTE,
        FieldFilterOperator.BETWEEN,
    ],
}

ENUM_OPERATORS = (FieldFilterOperator.EQ, FieldFilterOperator.IN)

_GRAPHQL_OPERATORS: Dict[FieldFilterOperator, str] = {
    FieldFilterOperator.EQ: "equal",
    FieldFilterOperator.LIKE: "like",
    FieldFilterOperator.IN: "in",
    FieldFilterOperator.IS_NULL: "isNull",
    FieldFilterOperator.GT: "greaterThan",
    FieldFilterOperator.GTE: "greaterThanEqual",
    FieldFilterOperator.LT: "lessThan",
    FieldFilterOperator.LTE: "lessThanEqual",
    FieldFilterOperator.BETWEEN: "between",
}

AnyFilter = Union[FieldFilter, LogicalFilter, NestedFilter]


def build_filter_condition(
    fields: Sequence[FieldDescriptor],
    process_type: ProcessType,
    filter: Optional[AnyFilter] = None,
    is_nested: bool = False,
) -> str:
    """Return the GraphQL ``where`` body for ``filter`` or ``""`` when absent.

    Top-level field filters are checked against the introspected ``fields``;
    fields inside a nested filter are not part of that schema and are only
    checked against the global operator list.
    """

    if filter is None:
        return ""

    if isinstance(filter, NestedFilter):
        return _handle_nested_filter(fields, process_type, filter)

    if isinstance(filter, LogicalFilter):
        return _handle_logical_filter(fields, process_type, filter)

    if filter.operator not in SUPPORTED_OPERATORS:
        raise FilterValidationError(
            f"Unsupported operator {filter.operator.value}. Supported operators are: "
            f"{', '.join(op.value for op in SUPPORTED_OPERATORS)}"
        )

    field_def: Optional[FieldDescriptor] = None
    if not is_nested:
        field_def = next((f for f in fields if f.name == filter.field), None)
        if field_def is None:
            raise FilterValidationError(f'Can\'t find field "{filter.field}" definition')

        if not is_operator_allowed_for_field(filter.operator, field_def, process_type):
            allowed = SUPPORTED_OPERATORS_BY_TYPE.get(field_def.type_name or "", [])
            if _is_enum_field(field_def.name, process_type):
                allowed = list(ENUM_OPERATORS)
            raise FilterValidationError(
                f'Unsupported operator {filter.operator.value} for field "{field_def.name}" '
                f'of type "{field_def.type_name}". Allowed operators are: '
                f"{', '.join(op.value for op in allowed)}"
            )

    if filter.operator == FieldFilterOperator.IS_NULL:
        return f"{filter.field}: {{{_GRAPHQL_OPERATORS[filter.operator]}: {_to_graphql_bool(filter.value)}}}"
    if filter.operator == FieldFilterOperator.BETWEEN:
        return _handle_between_operator(filter)
    return _handle_binary_operator(filter, field_def, process_type)


def is_operator_allowed_for_field(
    operator: FieldFilterOperator,
    field_def: FieldDescriptor,
    process_type: ProcessType,
) -> bool:
    if _is_enum_field(field_def.name, process_type):
        return operator in ENUM_OPERATORS
    return operator in SUPPORTED_OPERATORS_BY_TYPE.get(field_def.type_name or "", [])


def _handle_logical_filter(
    fields: Sequence[FieldDescriptor],
    process_type: ProcessType,
    filter: LogicalFilter,
) -> str:
    sub_clauses = [build_filter_condition(fields, process_type, child) for child in filter.filters]
    return f"{filter.operator.value.lower()}: {{{', '.join(sub_clauses)}}}"


def _handle_nested_filter(
    fields: Sequence[FieldDescriptor],
    process_type: ProcessType,
    filter: NestedFilter,
) -> str:
    inner = build_filter_condition(fields, process_type, filter.nested, is_nested=True)
    return f"{filter.field}: {{{inner}}}"


def _handle_between_operator(filter: FieldFilter) -> str:
    if not isinstance(filter.value, (list, tuple)) or len(filter.value) != 2:
        raise FilterValidationError("Between operator requires an array of two elements")
    lower, upper = (_stringify(v) for v in filter.value)
    return f'{filter.field}: {{{_GRAPHQL_OPERATORS[FieldFilterOperator.BETWEEN]}: {{from: "{lower}", to: "{upper}"}}}}'


def _handle_binary_operator(
    filter: FieldFilter,
    field_def: Optional[FieldDescriptor],
    process_type: ProcessType,
) -> str:
    if _is_enum_field(filter.field, process_type) and filter.operator not in ENUM_OPERATORS:
        raise FilterValidationError(
            f"Invalid operator {filter.operator.value} for enum field {filter.field} filter"
        )

    if isinstance(filter.value, (list, tuple)):
        formatted = "[" + ", ".join(
            _format_value(filter.field, v, field_def, process_type) for v in filter.value
        ) + "]"
    else:
        formatted = _format_value(filter.field, filter.value, field_def, process_type)
    return f"{filter.field}: {{{_GRAPHQL_OPERATORS[filter.operator]}: {formatted}}}"


def _is_enum_field(field_name: str, process_type: ProcessType) -> bool:
    return process_type == "ProcessInstance" and field_name == "state"


def _format_value(
    field_name: str,
    value: Any,
    field_def: Optional[FieldDescriptor],
    process_type: ProcessType,
) -> str:
    if field_def is None:
        return f'"{_stringify(value)}"'
    if _is_enum_field(field_name, process_type):
        return _stringify(value)
    if field_def.type_name in SUPPORTED_OPERATORS_BY_TYPE:
        return f'"{_stringify(value)}"'
    raise FilterValidationError(
        f"Failed to format value for {field_name} {value} with type {field_def.type_name}"
    )


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _to_graphql_bool(value: Any) -> str:
    if isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        result = value.lower() == "true"
    elif isinstance(value, (int, float)):
        result = value == 1
    else:
        result = False
    return "true" if result else "false"
