from typing import Any, Dict, Generic, List, Optional, Type, TypeVar, Union
from sqlalchemy.orm import Session
from sqlalchemy import asc, desc
from pydantic import BaseModel

from core.exceptions import NotFoundError

ModelType = TypeVar("ModelType")


class CRUDBase(Generic[ModelType]):
    def __init__(self, model: Type[ModelType], db: Session):
        """
        Repository bound to one session with default Create, Read and Delete
        helpers. Rows are addressed by their external ``uuid``.
        """
        self.model = model
        self.db = db

    def get(self, uuid: str) -> Optional[ModelType]:
        """Get a single record by its external id"""
        return self.db.query(self.model).filter(self.model.uuid == uuid).first()

    def get_or_404(self, uuid: str, resource: Optional[str] = None) -> ModelType:
        obj = self.get(uuid)
        if obj is None:
            raise NotFoundError(resource or self.model.__name__, uuid)
        return obj

    def get_multi_by_field(
        self,
        field: str,
        value: Any,
        sort_by: Optional[str] = None,
        sort_order: str = "asc"
    ) -> List[ModelType]:
        """Get multiple records by field value"""
        if not hasattr(self.model, field):
            return []
        query = self.db.query(self.model).filter(getattr(self.model, field) == value)
        if sort_by and hasattr(self.model, sort_by):
            order = desc if sort_order.lower() == "desc" else asc
            query = query.order_by(order(getattr(self.model, sort_by)))
        return query.all()

    def create(self, obj_in: Union[BaseModel, Dict[str, Any]]) -> ModelType:
        """Create a new record"""
        obj_in_data = obj_in.model_dump(exclude_unset=True) if isinstance(obj_in, BaseModel) else dict(obj_in)
        db_obj = self.model(**obj_in_data)
        self.db.add(db_obj)
        self.db.commit()
        self.db.refresh(db_obj)
        return db_obj

