"""
Dish API endpoints - catalog queries, CRUD and dish login
"""
from typing import Any, List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cuisine_api.api.auth import (
    MAX_PASSWORD_BYTES,
    create_access_token,
    get_current_user,
    get_password_hash,
    verify_password,
)
from cuisine_api.database import get_db
from cuisine_api.models.dish import Dish
from cuisine_api.services.query_builder import (
    RANGE_OPERATORS,
    build_ingredient_match_query,
    build_list_query,
    build_search_query,
    parse_list_filter,
    parse_search_filter,
    split_tokens,
)
from cuisine_api.services.seed_gate import seed_gate, seed_if_empty
from cuisine_api.utils.errors import AuthFailure, NotFound, UpstreamFailure, ValidationFailure
from cuisine_api.utils.logger import get_logger, redact

logger = get_logger(__name__)
router = APIRouter()


# --- Pydantic Schemas ---

class DishResponse(BaseModel):
    id: str
    name: str
    ingredients: List[str] = []
    prep_time: Optional[int] = None
    cook_time: Optional[int] = None
    region: Optional[str] = None
    course: Optional[str] = None
    diet: Optional[str] = None
    flavor_profile: Optional[str] = None
    state: Optional[str] = None


class DishListEnvelope(BaseModel):
    totalDishes: int
    items: List[DishResponse]


class DishMessageResponse(BaseModel):
    message: str
    dish: DishResponse


class DishCreate(BaseModel):
    name: str = Field(..., min_length=1, json_schema_extra={"example": "Paneer Butter Masala"})
    ingredients: List[str] = Field(..., json_schema_extra={"example": ["Paneer", "Tomato", "Cream"]})
    password: str = Field(..., min_length=1)
    prep_time: Optional[int] = Field(None, ge=0)
    cook_time: Optional[int] = Field(None, ge=0)
    region: Optional[str] = None
    course: Optional[str] = None
    diet: Optional[str] = None
    flavor_profile: Optional[str] = None
    state: Optional[str] = None

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return value


class LoginRequest(BaseModel):
    name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    message: str
    token: str


class IngredientsUpdate(BaseModel):
    ingredients: List[str]


# --- Helpers ---

def _build_dish_response(dish: Dish) -> DishResponse:
    return DishResponse(
        id=dish.id,
        name=dish.name,
        ingredients=list(dish.ingredients),
        prep_time=dish.prep_time,
        cook_time=dish.cook_time,
        region=dish.region,
        course=dish.course,
        diet=dish.diet,
        flavor_profile=dish.flavor_profile,
        state=dish.state,
    )


async def _get_dish_or_404(db: AsyncSession, dish_id: str) -> Dish:
    result = await db.execute(select(Dish).where(Dish.id == dish_id))
    dish = result.scalar_one_or_none()
    if not dish:
        logger.warning(f"Dish not found: {dish_id}")
        raise NotFound("Dish not found")
    return dish


async def _seed_on_first_listing(db: AsyncSession) -> None:
    async def _seed():
        await seed_if_empty(db)

    await seed_gate.run_once(_seed)


# Bracket range keys are read from the raw query string, so declare them for the docs
RANGE_QUERY_PARAMETERS = [
    {
        "name": f"{field_name}[{op}]",
        "in": "query",
        "required": False,
        "schema": {"type": "number"},
        "description": f"{field_name} {op} value, in minutes",
    }
    for field_name in ("prep_time", "cook_time")
    for op in RANGE_OPERATORS
]


# --- Endpoints ---

@router.get(
    "",
    response_model=List[DishResponse],
    openapi_extra={"parameters": RANGE_QUERY_PARAMETERS},
)
async def get_all_dishes(
    request: Request,
    course: Optional[str] = Query(None, description="Exact course match"),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """List dishes.

    Supports ``course`` and bracket range filters on ``prep_time`` and
    ``cook_time``, e.g. ``cook_time[gte]=10&cook_time[lte]=30``. The first
    call in a process imports the CSV dataset if the store is empty.
    """
    await _seed_on_first_listing(db)

    filters = parse_list_filter(request.query_params)
    logger.info(f"Fetching all dishes with filters: {filters}")
    try:
        result = await db.execute(build_list_query(filters))
        dishes = result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dishes: {e}")
        raise UpstreamFailure("Failed to fetch dishes", str(e))

    logger.info(f"Fetched {len(dishes)} dishes successfully.")
    return [_build_dish_response(d) for d in dishes]


@router.get("/by-ingredients", response_model=DishListEnvelope)
async def get_dishes_by_available_ingredients(
    ingredients: Optional[str] = Query(
        None, description="Comma-separated ingredients, every one must be in the dish"
    ),
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Find dishes that contain all of the given ingredients."""
    logger.info(f"Received request to fetch dishes with ingredients: {ingredients}")
    ingredient_list = split_tokens(ingredients)
    if not ingredient_list:
        logger.warning("No ingredients provided in the request query.")
        raise ValidationFailure("Please provide at least one ingredient.")

    try:
        result = await db.execute(build_ingredient_match_query(ingredient_list))
        dishes = result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dishes: {e}")
        raise UpstreamFailure("Failed to fetch dishes", str(e))

    logger.info(f"Found {len(dishes)} matching dishes")
    if not dishes:
        raise NotFound("No matching dishes found with the given ingredients.")

    return DishListEnvelope(
        totalDishes=len(dishes),
        items=[_build_dish_response(d) for d in dishes],
    )


@router.get("/search", response_model=Union[DishListEnvelope, List[DishResponse]])
async def search_dishes(
    request: Request,
    flavor_profile: Optional[str] = Query(None, description="Case-insensitive regular expression, e.g. spicy or sw.et"),
    max_cook_time: Optional[str] = Query(None, description="Maximum cook time in minutes"),
    include_ingredient: Optional[str] = Query(None, description="Comma-separated, any must match"),
    exclude_ingredient: Optional[str] = Query(None, description="Comma-separated, none may match"),
    sort_by: Optional[str] = Query(None, description="Field to sort by, e.g. prep_time"),
    order: Optional[str] = Query(None, description="asc or desc"),
    count: Optional[str] = Query(None, description="'true' wraps results with totalDishes"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Search dishes by flavor profile with optional cook time, ingredient and sort filters."""
    logger.info(f"Received dish search request: {dict(request.query_params)}")
    filters = parse_search_filter(request.query_params)

    try:
        result = await db.execute(build_search_query(filters))
        dishes = result.scalars().all()
    except SQLAlchemyError as e:
        logger.error(f"Search API error: {e}")
        raise UpstreamFailure("Failed to fetch dish", str(e))

    logger.info(f"Found {len(dishes)} matching dishes.")
    if not dishes:
        logger.warning("No matching dishes found.")
        raise NotFound("No matching dishes found.")

    items = [_build_dish_response(d) for d in dishes]
    if filters.with_count:
        return DishListEnvelope(totalDishes=len(items), items=items)
    return items


@router.post("/add", status_code=201, response_model=DishMessageResponse)
async def add_dish(
    data: DishCreate,
    db: AsyncSession = Depends(get_db),
):
    """Create a dish; its password allows logging in as this dish."""
    logger.info(f"Received request to add a new dish: {redact(data.model_dump())}")

    try:
        hashed_password = get_password_hash(data.password)
    except ValueError as e:
        logger.error(f"Error hashing password for new dish: {e}")
        raise UpstreamFailure("Failed to add dish.", str(e))

    dish = Dish(**data.model_dump(exclude={"password"}), password_hash=hashed_password)
    db.add(dish)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error adding dish: {e}")
        raise UpstreamFailure("Failed to add dish.", str(e))

    logger.info(f"Dish added successfully: {dish.id}")
    return DishMessageResponse(message="Dish added successfully", dish=_build_dish_response(dish))


@router.post("/login", response_model=LoginResponse, tags=["Authentication"])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange a dish name and password for a one-hour bearer token."""
    logger.info(f"Login attempt: {data.name}")

    # Names are not unique: prefer dishes that can log in, then the oldest
    query = (
        select(Dish)
        .where(Dish.name == data.name)
        .order_by(Dish.password_hash.is_(None), Dish.created_at)
        .limit(1)
    )
    try:
        result = await db.execute(query)
        dish = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Login failed for {data.name}: {e}")
        raise UpstreamFailure("Login failed", str(e))

    if not dish:
        logger.warning(f"Dish not found for login: {data.name}")
        raise NotFound("Dish not found")

    if not verify_password(data.password, dish.password_hash):
        logger.warning(f"Invalid credentials provided for: {data.name}")
        raise AuthFailure("Invalid credentials", status_code=401)

    token = create_access_token(data={"id": dish.id, "name": dish.name})
    logger.info(f"Login successful: {data.name}")
    return LoginResponse(message="Login successful", token=token)


@router.get("/{dish_id}", response_model=DishResponse)
async def get_dish_by_id(
    dish_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Get a single dish"""
    logger.info(f"Fetching dish with ID: {dish_id}")
    try:
        dish = await _get_dish_or_404(db, dish_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching dish: {e}")
        raise UpstreamFailure("Failed to fetch dish", str(e))
    return _build_dish_response(dish)


@router.put("/update/{dish_id}", response_model=DishMessageResponse)
async def update_dish_ingredients(
    dish_id: str,
    data: IngredientsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
):
    """Replace a dish's ingredient list"""
    logger.info(f"Update dish ingredients request: {dish_id} -> {data.ingredients}")
    try:
        dish = await _get_dish_or_404(db, dish_id)
        dish.ingredients = data.ingredients
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error updating dish {dish_id}: {e}")
        raise UpstreamFailure("Failed to update dish", str(e))

    logger.info(f"Dish updated successfully: {dish_id}")
    return DishMessageResponse(message="Dish updated successfully", dish=_build_dish_response(dish))


@router.delete("/deletedish/{dish_id}")
async def delete_dish(
    dish_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: dict = Depends(get_current_user),
) -> dict[str, Any]:
    """Delete a dish"""
    logger.info(f"Delete dish request: {dish_id}")
    try:
        dish = await _get_dish_or_404(db, dish_id)
        await db.delete(dish)
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Error deleting dish {dish_id}: {e}")
        raise UpstreamFailure("Failed to delete dish", str(e))

    logger.info(f"Dish deleted successfully: {dish_id}")
    return {"message": "Dish deleted successfully"}
