from collections.abc import Mapping
from typing import Any, Callable


def transform_data(data: Any, transform: Callable[[str], str]) -> Any:
    """Rename every mapping key in `data` with `transform`, descending into lists."""
    if isinstance(data, Mapping):
        return {
            transform(key): transform_data(value, transform)
            for key, value in data.items()
        }

    if isinstance(data, (list, tuple)):
        return [transform_data(item, transform) for item in data]

    return data
