from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


def identity(value):
    return value


# =========================
# CONFIGURATION
# =========================
class TransformProperty(BaseModel):
    """
    Property-name transforms applied on the way in (`to`) and out (`from`).
    Example: to=snake_case, from_=camel_case for a camelCase API over snake_case columns.
    """

    to: Callable[[str], str] = identity
    from_: Callable[[str], str] = Field(default=identity, alias="from")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class PrequelConfig(BaseModel):
    transform_property: TransformProperty = Field(default_factory=TransformProperty)

    model_config = ConfigDict(frozen=True)


# =========================
# QUERY SETTINGS
# =========================
class QuerySettings(BaseModel):
    """
    Validated shape of a settings mapping.
    `where` and `include` stay free-form trees; the translator walks them.
    """

    where: Dict[str, Any] = {}
    include: Dict[str, Any] = {}
    limit: Optional[int] = Field(default=None, ge=0)
    skip: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    order: Optional[Union[str, List[Any]]] = None
    # AsyncSession or prequel Transaction owned by the caller
    transaction: Optional[Any] = None

    model_config = ConfigDict(extra="forbid")


# =========================
# HTTP BODIES
# =========================
class QueryRequest(BaseModel):
    where: Dict[str, Any] = {}
    include: Dict[str, Any] = {}
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)
    order: Optional[Union[str, List[Any]]] = None


class UpdateManyRequest(BaseModel):
    ids: List[Any] = Field(min_length=1)
    data: Dict[str, Any]


class CountedResponse(BaseModel):
    count: int
    rows: List[Dict[str, Any]]


class MutationResponse(BaseModel):
    count: int
    rows: List[Dict[str, Any]] = []
