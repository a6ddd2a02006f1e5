"""
Prequel: SQLAlchemy with less "features".

Every model method takes an optional callback as its last parameter and
returns a Deferred. Without a callback nothing runs until the Deferred is
awaited (or called with a callback later):

    person = prequel["Person"].get(123, {"include": {"$fields": ["first_name"]}})
    record = await person

With a callback the operation starts immediately:

    prequel["Person"].get(123, None, lambda error, person: ...)

Settings follow the SQLAlchemy query shape with a simplified where/include:

    {
        "skip": 0,
        "limit": 10,
        "order": [["name", "DESC"]],
        "where": {
            "some_field": "x",
            "related_table": {"related_field": "y"},
        },
        "include": {
            "$fields": ["id", "name", "some_field"],
            "age": True,
            "related_table": {"$fields": ["related_field"]},
        },
    }
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Mapping, Optional, Sequence

from prequel.core.cardinality import check_affected, one_result_or_error
from prequel.core.deferred import Deferred, run
from prequel.core.engine import ModelEngine
from prequel.core.errors import NotFound, Unprocessable
from prequel.core.merge import extend_settings
from prequel.core.query.format import format_result
from prequel.core.query.parse import parse_settings
from prequel.core.query.transform import transform_data
from prequel.core.schemas import PrequelConfig, TransformProperty
from prequel.core.transactions import with_transaction

logger = logging.getLogger(__name__)

Callback = Optional[Callable[[Optional[BaseException], Any], Any]]


@dataclass(frozen=True)
class PrequelModel:
    name: str
    model: ModelEngine
    config: PrequelConfig = field(default_factory=PrequelConfig)

    @property
    def transform_property(self) -> TransformProperty:
        return self.config.transform_property

    def _to_engine(self, data):
        return transform_data(data, self.transform_property.to)

    # =========================
    # Reads
    # =========================
    def get(self, id, settings=None, callback: Callback = None) -> Deferred:
        """Exactly one record by id. NotFound (404) if there is none."""
        settings = extend_settings(settings, {"where": {"id": id}})
        return self.find_one(settings, callback)

    def find(self, settings=None, callback: Callback = None) -> Deferred:
        """The first record of a query, or None when nothing matches."""
        settings = extend_settings(settings, {"limit": 1})

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.find, query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def find_all(self, settings=None, callback: Callback = None) -> Deferred:
        settings = extend_settings(settings)

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.find_all, query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def find_and_count_all(self, settings=None, callback: Callback = None) -> Deferred:
        """{"count": total matches, "rows": the page selected by limit/offset}."""
        settings = extend_settings(settings)

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.find_and_count_all, query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def find_one(self, settings=None, callback: Callback = None) -> Deferred:
        """
        Exactly one record of a query.
        NotFound (404) if nothing matches; CardinalityError if more than one does.
        """
        # One more than needed, so a second match can be detected
        settings = extend_settings(settings, {"limit": 2})

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.find_all, query)
        result = Deferred(one_result_or_error, engine_result, self)

        return run(result, callback)

    # =========================
    # Removes
    # =========================
    def find_and_remove(self, settings=None, callback: Callback = None) -> Deferred:
        """Remove every record matching a query."""
        settings = extend_settings(settings)

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.remove, query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def _find_many_and_remove(self, count: int, settings=None) -> Deferred:
        settings = extend_settings(settings)

        async def resolve_result():
            query = parse_settings(settings, self)

            async def remove_rows(transaction):
                engine_result = await self.model.remove(
                    replace(query, transaction=transaction)
                )
                return check_affected(format_result(engine_result, self), count)

            return await with_transaction(
                self.model, settings.get("transaction"), remove_rows
            )

        return Deferred(resolve_result)

    def find_one_and_remove(self, settings=None, callback: Callback = None) -> Deferred:
        """
        Remove exactly one record of a query.
        NotFound (404) if nothing matches; CardinalityError if more than one does.
        """
        result = self._expect_one(self._find_many_and_remove(1, settings))
        return run(result, callback)

    def remove(self, id, settings=None, callback: Callback = None) -> Deferred:
        """Remove exactly one record by id. NotFound (404) if there is none."""
        settings = extend_settings(settings, {"where": {"id": id}})
        return self.find_one_and_remove(settings, callback)

    # =========================
    # Creates and updates
    # =========================
    def create(self, data: Mapping, settings=None, callback: Callback = None) -> Deferred:
        settings = extend_settings(settings)

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.create, self._to_engine(data), query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def find_and_update(
        self, data: Mapping, settings=None, callback: Callback = None
    ) -> Deferred:
        """Update every record matching a query."""
        settings = extend_settings(settings)

        query = Deferred(parse_settings, settings, self)
        engine_result = Deferred(self.model.update, self._to_engine(data), query)
        result = Deferred(format_result, engine_result, self)

        return run(result, callback)

    def _find_many_and_update(self, count: int, data: Mapping, settings=None) -> Deferred:
        settings = extend_settings(settings)
        values = self._to_engine(data)

        async def resolve_result():
            query = parse_settings(settings, self)

            async def update_rows(transaction):
                engine_result = await self.model.update(
                    values, replace(query, transaction=transaction)
                )
                return check_affected(format_result(engine_result, self), count)

            return await with_transaction(
                self.model, settings.get("transaction"), update_rows
            )

        return Deferred(resolve_result)

    def find_one_and_update(
        self, data: Mapping, settings=None, callback: Callback = None
    ) -> Deferred:
        """
        Update exactly one record of a query.
        NotFound (404) if nothing matches; CardinalityError if more than one does.
        """
        result = self._expect_one(self._find_many_and_update(1, data, settings))
        return run(result, callback)

    def update(self, id, data: Mapping, settings=None, callback: Callback = None) -> Deferred:
        """Update exactly one record by id. NotFound (404) if there is none."""
        settings = extend_settings(settings, {"where": {"id": id}})
        return self.find_one_and_update(data, settings, callback)

    def update_many(
        self, ids: Sequence, data: Mapping, settings=None, callback: Callback = None
    ) -> Deferred:
        """
        Update exactly len(ids) records.
        Unprocessable (422) if fewer than that are updated.
        """
        ids = list(ids)
        settings = extend_settings(settings, {"where": {"id": ids}})
        return run(self._find_many_and_update(len(ids), data, settings), callback)

    def _expect_one(self, mutation: Deferred) -> Deferred:
        # A single record that is not there is "not found", not a validation failure
        async def not_found_on_shortfall():
            try:
                return await mutation
            except Unprocessable as error:
                raise NotFound(f"{self.name} not found") from error

        return Deferred(not_found_on_shortfall)


def create_model_methods(model, model_name: str, config: PrequelConfig, sessionmaker=None):
    if not isinstance(model, ModelEngine):
        model = (
            ModelEngine(model, sessionmaker) if sessionmaker is not None else ModelEngine(model)
        )
    return PrequelModel(name=model_name, model=model, config=config)


def prequelize(
    models: Mapping[str, Any], config: Optional[PrequelConfig] = None, sessionmaker=None
) -> Dict[str, PrequelModel]:
    """
    Bind the prequel operations to each mapped class.

    Args:
        models: entity name -> SQLAlchemy mapped class (or a ready ModelEngine).
        config: property transforms, identity by default.
        sessionmaker: async_sessionmaker to run on, AsyncSessionLocal by default.

    Returns:
        entity name -> PrequelModel.

    Example:
        prequel = prequelize({"User": models.User})
        user = await prequel["User"].get(1)
    """
    config = config or PrequelConfig()
    logger.debug(f"Binding prequel models: {', '.join(models)}")
    return {
        name: create_model_methods(model, name, config, sessionmaker)
        for name, model in models.items()
    }
