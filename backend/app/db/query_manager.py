"""Model-bound query manager exposed as `Model.objects`."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy import inspect
from sqlmodel import select

from app.db.queryset import QuerySet

ModelT = TypeVar("ModelT")


class ModelManager(Generic[ModelT]):
    """Entry point for building `QuerySet`s over a single model."""

    def __init__(self, model: type[ModelT]) -> None:
        self.model = model

    def _primary_key(self) -> Any:
        return inspect(self.model).primary_key[0]

    def all(self) -> QuerySet[ModelT]:
        return QuerySet(select(self.model))

    def filter(self, *criteria: Any) -> QuerySet[ModelT]:
        return self.all().filter(*criteria)

    def filter_by(self, **kwargs: Any) -> QuerySet[ModelT]:
        return self.all().filter_by(**kwargs)

    def by_id(self, obj_id: object) -> QuerySet[ModelT]:
        return self.filter(self._primary_key() == obj_id)


class ManagerDescriptor(Generic[ModelT]):
    """Class-level descriptor returning a manager bound to the owning model."""

    def __get__(self, instance: object, owner: type[ModelT]) -> ModelManager[ModelT]:
        return ModelManager(owner)
