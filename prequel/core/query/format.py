from collections.abc import Mapping
from typing import Any, Callable, Dict

from sqlalchemy import inspect
from sqlalchemy.orm import InstanceState

from prequel.core.engine import MutationResult
from prequel.core.query.transform import transform_data


def format_instance(instance, from_: Callable[[str], str], _path=()) -> Dict[str, Any]:
    """
    Plain dict of an ORM instance's loaded columns and relationships.
    Unloaded attributes are left out, so formatting never triggers a lazy load.
    """
    state = inspect(instance)
    unloaded = state.unloaded
    path = _path + (id(instance),)
    record = {}

    for prop in state.mapper.column_attrs:
        if prop.key not in unloaded:
            record[from_(prop.key)] = state.dict.get(prop.key)

    for relationship in state.mapper.relationships:
        if relationship.key in unloaded:
            continue
        value = state.dict.get(relationship.key)
        # Skip back-references to an instance already being formatted
        if value is not None and id(value) in path:
            continue
        record[from_(relationship.key)] = format_value(value, from_, path)

    return record


def format_value(value, from_: Callable[[str], str], _path=()):
    if value is None:
        return None

    if isinstance(value, (list, tuple)):
        return [format_value(item, from_, _path) for item in value]

    if isinstance(value, Mapping):
        return transform_data(dict(value), from_)

    if isinstance(inspect(value, raiseerr=False), InstanceState):
        return format_instance(value, from_, _path)

    return value


def format_result(raw, prequel_model):
    """Shape a raw engine result for callers: records, lists, counts or mutations."""
    from_ = prequel_model.transform_property.from_

    if isinstance(raw, MutationResult):
        return MutationResult(format_value(raw.rows, from_), raw.count)

    if isinstance(raw, Mapping) and set(raw) == {"count", "rows"}:
        return {"count": raw["count"], "rows": format_value(raw["rows"], from_)}

    return format_value(raw, from_)
