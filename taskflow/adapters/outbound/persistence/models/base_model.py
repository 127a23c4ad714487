# taskflow/adapters/outbound/persistence/models/base_model.py

"""
Base class for SQLAlchemy models.
"""

from sqlalchemy import event
from sqlalchemy.orm import DeclarativeBase

from taskflow.shared.utils.datetime_utils import DateTimeUtil


class Base(DeclarativeBase):
    """Base declarativa para todos os modelos."""


@event.listens_for(Base, "before_insert", propagate=True)
def set_created_at(mapper, connection, target):
    """
    Set created_at and updated_at to current UTC time before insert.
    """
    if hasattr(target, "created_at") and target.created_at is None:
        target.created_at = DateTimeUtil.for_storage()

    if hasattr(target, "updated_at"):
        target.updated_at = DateTimeUtil.for_storage()


@event.listens_for(Base, "before_update", propagate=True)
def set_updated_at(mapper, connection, target):
    """
    Set updated_at to current UTC time before update.
    """
    if hasattr(target, "updated_at"):
        target.updated_at = DateTimeUtil.for_storage()
