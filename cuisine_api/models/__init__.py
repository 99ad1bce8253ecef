from cuisine_api.models.dish import Dish, DishIngredient

__all__ = [
    "Dish",
    "DishIngredient",
]
