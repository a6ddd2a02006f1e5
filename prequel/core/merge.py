from collections.abc import Mapping
from typing import Any, Dict, Optional


def deep_extend(
    target: Optional[Mapping], source: Optional[Mapping], _memo=None
) -> Dict[str, Any]:
    """
    Return a new dict holding `target` deep-extended with `source`.

    Nested mappings merge key by key; anything else in `source` (lists,
    scalars) replaces the value in `target`. Neither input is modified.
    Self-referential trees are handled: each (target, source) node pair is
    merged once and reused when the walk comes back to it.
    """
    if _memo is None:
        _memo = {}

    key = (id(target) if isinstance(target, Mapping) else None, id(source))
    if key in _memo:
        return _memo[key]

    result = dict(target) if isinstance(target, Mapping) else {}
    _memo[key] = result

    for name, value in (source or {}).items():
        if isinstance(value, Mapping):
            result[name] = deep_extend(result.get(name), value, _memo)
        else:
            result[name] = value

    return result


def extend_settings(
    settings: Optional[Mapping], extended_settings: Optional[Mapping] = None
) -> Dict[str, Any]:
    """
    Layer `extended_settings` over `settings`.

    `where` and `include` are deep-extended, every other key is a flat
    override. Used both for caller settings and for the constraints an
    operation forces on them, e.g. `where: {id}` or `limit: 2`.
    """
    extended_settings = extended_settings or {}

    merged = {**(settings or {}), **extended_settings}
    merged["where"] = deep_extend(
        (settings or {}).get("where"), extended_settings.get("where")
    )
    merged["include"] = deep_extend(
        (settings or {}).get("include"), extended_settings.get("include")
    )
    return merged
