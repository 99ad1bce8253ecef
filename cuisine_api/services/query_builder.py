"""
Translate dish query-string parameters into store queries.

Parsing and query building are split: ``parse_*`` read only an enumerated
set of keys into typed filter objects, ``build_*`` turn those objects into
SQLAlchemy selects. Unknown keys are ignored, so a caller can never smuggle
in an operator or a column the API does not expose.
"""
import math
import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from sqlalchemy import Select, and_, select

from cuisine_api.models.dish import Dish, DishIngredient
from cuisine_api.utils.errors import ValidationFailure

RANGE_OPERATORS = ("gte", "lte", "gt", "lt")

SORTABLE_FIELDS = {
    "name": Dish.name,
    "prep_time": Dish.prep_time,
    "cook_time": Dish.cook_time,
    "region": Dish.region,
    "course": Dish.course,
    "diet": Dish.diet,
    "flavor_profile": Dish.flavor_profile,
    "state": Dish.state,
}


@dataclass
class NumericRange:
    gte: Optional[float] = None
    lte: Optional[float] = None
    gt: Optional[float] = None
    lt: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, op) is None for op in RANGE_OPERATORS)

    def conditions(self, column) -> list:
        conds = []
        if self.gte is not None:
            conds.append(column >= self.gte)
        if self.lte is not None:
            conds.append(column <= self.lte)
        if self.gt is not None:
            conds.append(column > self.gt)
        if self.lt is not None:
            conds.append(column < self.lt)
        return conds


@dataclass
class DishListFilter:
    course: Optional[str] = None
    prep_time: NumericRange = field(default_factory=NumericRange)
    cook_time: NumericRange = field(default_factory=NumericRange)


@dataclass
class DishSearchFilter:
    flavor_profile: str
    max_cook_time: Optional[int] = None
    include_ingredients: list[str] = field(default_factory=list)
    exclude_ingredients: list[str] = field(default_factory=list)
    sort_by: Optional[str] = None
    descending: bool = False
    with_count: bool = False


def split_tokens(raw: Optional[str]) -> list[str]:
    """Split a comma-separated parameter into trimmed, non-blank tokens."""
    if not raw:
        return []
    return [token.strip() for token in raw.split(",") if token.strip()]


def _parse_number(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _parse_range(params: Mapping[str, str], field_name: str) -> NumericRange:
    # Bracket notation: cook_time[gte]=10&cook_time[lte]=30
    return NumericRange(**{
        op: _parse_number(params.get(f"{field_name}[{op}]"))
        for op in RANGE_OPERATORS
    })


def _case_insensitive(pattern: str) -> str:
    # Inline flag, understood by Python re (SQLite REGEXP) and PostgreSQL alike
    return f"(?i){pattern}"


def parse_list_filter(params: Mapping[str, str]) -> DishListFilter:
    return DishListFilter(
        course=params.get("course") or None,
        prep_time=_parse_range(params, "prep_time"),
        cook_time=_parse_range(params, "cook_time"),
    )


def parse_search_filter(params: Mapping[str, str]) -> DishSearchFilter:
    """Read the search parameters, raising ValidationFailure on bad input."""
    flavor_profile = (params.get("flavor_profile") or "").strip()
    if not flavor_profile:
        raise ValidationFailure("Please provide a search query.")
    try:
        re.compile(_case_insensitive(flavor_profile))
    except re.error as e:
        raise ValidationFailure(f"Invalid search pattern: {e}")

    max_cook_time = None
    raw_max = params.get("max_cook_time")
    if raw_max:
        try:
            max_cook_time = int(raw_max.strip())
        except ValueError:
            raise ValidationFailure("max_cook_time must be an integer.")

    sort_by = params.get("sort_by") or None
    if sort_by is not None and sort_by not in SORTABLE_FIELDS:
        allowed = ", ".join(sorted(SORTABLE_FIELDS))
        raise ValidationFailure(f"Cannot sort by '{sort_by}'. Allowed fields: {allowed}")

    return DishSearchFilter(
        flavor_profile=flavor_profile,
        max_cook_time=max_cook_time,
        include_ingredients=split_tokens(params.get("include_ingredient")),
        exclude_ingredients=split_tokens(params.get("exclude_ingredient")),
        sort_by=sort_by,
        descending=params.get("order") == "desc",
        with_count=params.get("count") == "true",
    )


def build_list_query(filters: DishListFilter) -> Select:
    conditions = []
    if filters.course:
        conditions.append(Dish.course == filters.course)
    conditions.extend(filters.prep_time.conditions(Dish.prep_time))
    conditions.extend(filters.cook_time.conditions(Dish.cook_time))

    query = select(Dish)
    if conditions:
        query = query.where(and_(*conditions))
    return query


def build_search_query(filters: DishSearchFilter) -> Select:
    query = select(Dish).where(
        Dish.flavor_profile.regexp_match(_case_insensitive(filters.flavor_profile))
    )

    if filters.max_cook_time is not None:
        query = query.where(Dish.cook_time <= filters.max_cook_time)

    # At least one included ingredient AND none of the excluded ones
    if filters.include_ingredients:
        query = query.where(
            Dish.ingredient_rows.any(DishIngredient.name.in_(filters.include_ingredients))
        )
    if filters.exclude_ingredients:
        query = query.where(
            ~Dish.ingredient_rows.any(DishIngredient.name.in_(filters.exclude_ingredients))
        )

    if filters.sort_by:
        column = SORTABLE_FIELDS[filters.sort_by]
        query = query.order_by(column.desc() if filters.descending else column.asc())
    return query


def build_ingredient_match_query(ingredients: list[str]) -> Select:
    """Dishes whose ingredients include every requested ingredient."""
    required = dict.fromkeys(ingredients)  # dedupe, keep order
    return select(Dish).where(and_(*(
        Dish.ingredient_rows.any(DishIngredient.name == name) for name in required
    )))
