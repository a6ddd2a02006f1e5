import logging
import operator
from collections.abc import Mapping
from typing import Any, Callable, List, Optional

from pydantic import ValidationError
from sqlalchemy import and_, asc, desc, inspect
from sqlalchemy.orm import load_only, selectinload

from prequel.core.engine import NativeQuery
from prequel.core.errors import QueryError
from prequel.core.schemas import QuerySettings

logger = logging.getLogger(__name__)

# Reserved include key holding an explicit list of fields
FIELDS_KEY = "$fields"

OPERATORS = {
    "$eq": operator.eq,
    "$ne": operator.ne,
    "$gt": operator.gt,
    "$gte": operator.ge,
    "$lt": operator.lt,
    "$lte": operator.le,
    "$in": lambda column, value: column.in_(list(value)),
    "$notIn": lambda column, value: column.not_in(list(value)),
    "$like": lambda column, value: column.like(value),
    "$ilike": lambda column, value: column.ilike(value),
}


def _column(mapped_class, key: str, name: str):
    mapper = inspect(mapped_class)
    if key not in mapper.column_attrs:
        raise QueryError(f"Unknown field '{name}' on {mapped_class.__name__}")
    return getattr(mapped_class, key)


def compare(column, value):
    """Turn one simplified where value into a clause on `column`."""
    if isinstance(value, Mapping):
        clauses = []
        for name, operand in value.items():
            if name not in OPERATORS:
                raise QueryError(f"Unknown operator '{name}' for {column.key}")
            clauses.append(OPERATORS[name](column, operand))
        if not clauses:
            raise QueryError(f"Empty criteria for {column.key}")
        return and_(*clauses)

    if isinstance(value, (list, tuple, set, frozenset)):
        return column.in_(list(value))

    if value is None:
        return column.is_(None)

    return column == value


def build_where(mapped_class, where: Mapping, to: Callable[[str], str]) -> List[Any]:
    mapper = inspect(mapped_class)
    clauses = []

    for name, value in where.items():
        key = to(name)

        if key in mapper.relationships:
            relationship = mapper.relationships[key]
            if not isinstance(value, Mapping):
                raise QueryError(
                    f"Criteria for related '{name}' on {mapped_class.__name__} must be a mapping"
                )
            # EXISTS keeps the clause valid inside UPDATE and DELETE statements
            nested = build_where(relationship.mapper.class_, value, to)
            attribute = getattr(mapped_class, key)
            test = attribute.any if relationship.uselist else attribute.has
            clauses.append(test(and_(*nested)) if nested else test())
            continue

        clauses.append(compare(_column(mapped_class, key, name), value))

    return clauses


def build_include(mapped_class, include: Mapping, to: Callable[[str], str]) -> List[Any]:
    mapper = inspect(mapped_class)
    columns = []
    options = []

    for name, value in include.items():
        if name == FIELDS_KEY:
            columns.extend(_column(mapped_class, to(field), field) for field in value)
            continue

        key = to(name)

        if key in mapper.relationships:
            if not value:
                continue
            target = mapper.relationships[key].mapper.class_
            loader = selectinload(getattr(mapped_class, key))
            nested = build_include(target, value if isinstance(value, Mapping) else {}, to)
            options.append(loader.options(*nested) if nested else loader)
            continue

        column = _column(mapped_class, key, name)
        if value:
            columns.append(column)

    if columns:
        options.insert(0, load_only(*columns))

    return options


def build_order(mapped_class, order, to: Callable[[str], str]) -> List[Any]:
    """
    Accepts "name", ["name", "age"] or [["name", "DESC"], ["age", "ASC"]].
    """
    if not order:
        return []

    if isinstance(order, str):
        order = [order]

    clauses = []
    for entry in order:
        if isinstance(entry, str):
            name, direction = entry, "ASC"
        else:
            name, direction = (list(entry) + ["ASC"])[:2]

        column = _column(mapped_class, to(name), name)
        direction = str(direction).upper()
        if direction not in ("ASC", "DESC"):
            raise QueryError(f"Unknown order direction '{direction}' for {name}")
        clauses.append(desc(column) if direction == "DESC" else asc(column))

    return clauses


def parse_settings(settings: Optional[Mapping], prequel_model) -> NativeQuery:
    """
    Translate a prequel settings mapping into a NativeQuery for the model's engine.

    Example:
        parse_settings({"where": {"owner": {"email": "a@b.c"}}, "limit": 10}, model)
    """
    try:
        parsed = QuerySettings.model_validate(dict(settings or {}))
    except ValidationError as error:
        raise QueryError(str(error)) from error

    mapped_class = prequel_model.model.mapped_class
    to = prequel_model.transform_property.to

    query = NativeQuery(
        where=tuple(build_where(mapped_class, parsed.where, to)),
        options=tuple(build_include(mapped_class, parsed.include, to)),
        order_by=tuple(build_order(mapped_class, parsed.order, to)),
        limit=parsed.limit,
        offset=parsed.offset if parsed.offset is not None else parsed.skip,
        transaction=parsed.transaction,
    )

    logger.debug(
        f"{prequel_model.name}: {len(query.where)} where clause/s, "
        f"{len(query.options)} loader option/s, limit={query.limit}, offset={query.offset}"
    )
    return query
