"""
Dish model

A dish is both a catalog entry and a login principal: dishes created through
the API carry a bcrypt password hash, dishes imported from the CSV dataset
do not and therefore cannot authenticate.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from cuisine_api.database import Base


def _new_dish_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Dish(Base):
    __tablename__ = "dishes"

    id = Column(String(32), primary_key=True, default=_new_dish_id)
    name = Column(String, nullable=False, index=True)  # not unique, see login lookup
    prep_time = Column(Integer, nullable=True)  # minutes
    cook_time = Column(Integer, nullable=True)  # minutes
    region = Column(String, nullable=True)
    course = Column(String, nullable=True)
    diet = Column(String, nullable=True)
    flavor_profile = Column(String, nullable=True)
    state = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    ingredient_rows = relationship(
        "DishIngredient",
        back_populates="dish",
        order_by="DishIngredient.position",
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Plain list-of-strings view over ingredient_rows
    ingredients = association_proxy(
        "ingredient_rows",
        "name",
        creator=lambda name: DishIngredient(name=name),
    )

    def __init__(self, ingredients=(), **kwargs):
        # Build the child rows up front so the collection is loaded even when empty
        kwargs.setdefault("ingredient_rows", [DishIngredient(name=name) for name in ingredients])
        super().__init__(**kwargs)


class DishIngredient(Base):
    __tablename__ = "dish_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    dish_id = Column(
        String(32), ForeignKey("dishes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False)
    name = Column(String, nullable=False, index=True)

    dish = relationship("Dish", back_populates="ingredient_rows")
