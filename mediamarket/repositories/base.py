"""Base repository with the common lookups shared by the core repositories."""
from typing import Any, Generic, Type, TypeVar

from sqlalchemy.orm import Session

from mediamarket.core.errors import NotFound
from mediamarket.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Repositories never commit: they add/flush inside the caller's transaction.
    The orchestrating service owns commit and rollback.
    """

    entity_name = "Entity"

    def __init__(self, model: Type[ModelType], db: Session):
        self.model = model
        self.db = db

    def find(self, id: Any) -> ModelType | None:
        return self.db.query(self.model).filter(self.model.id == id).one_or_none()

    def get(self, id: Any) -> ModelType:
        """Like find(), but a missing row is a NotFound error."""
        obj = self.find(id)
        if obj is None:
            raise NotFound(f"{self.entity_name} not found with ID {id}.")
        return obj

    def create(self, obj_in: dict[str, Any]) -> ModelType:
        db_obj = self.model(**obj_in)
        self.db.add(db_obj)
        self.db.flush()
        return db_obj
