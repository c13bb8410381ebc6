"""Assemble data index GraphQL query documents."""

from __future__ import annotations

import re
from typing import List, Optional

from workflow_orchestrator.schemas.pagination import Pagination, SortOrder

_WHITESPACE = re.compile(r"\s+")


def build_graphql_query(
    *,
    type: str,
    query_body: str,
    where_clause: Optional[str] = None,
    pagination: Optional[Pagination] = None,
) -> str:
    """Build ``{Type (where: {...}, orderBy: {...}, pagination: {...}) { body } }``.

    Each argument is emitted only when it has content; the parenthesized
    argument list disappears entirely when none does.
    """

    arguments: List[str] = []
    if where_clause:
        arguments.append(f"where: {{{where_clause}}}")

    if pagination is not None:
        if pagination.sort_field:
            order = (pagination.order or SortOrder.ASC).value
            arguments.append(f"orderBy: {{{pagination.sort_field}: {order}}}")

        page: List[str] = []
        if pagination.limit is not None:
            page.append(f"limit: {pagination.limit}")
        if pagination.offset is not None:
            page.append(f"offset: {pagination.offset}")
        if page:
            arguments.append(f"pagination: {{{', '.join(page)}}}")

    query = f"{{{type}"
    if arguments:
        query += f" ({', '.join(arguments)}) "
    query += f" {{{query_body} }} }}"
    return _WHITESPACE.sub(" ", query).strip()
