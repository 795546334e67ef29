"""
Bundled recipe catalogue for the "What can I cook?" page.

Matching is substring based in both directions, so "bell pepper" matches
"pepper" and "cherry tomato" matches "tomato".
"""

from typing import Iterable, List, Literal

from pydantic import BaseModel, Field


class Recipe(BaseModel):
    id: str
    name: str
    image: str
    time: str
    difficulty: Literal["Easy", "Medium", "Hard"]
    key_ingredients: List[str]
    extras: List[str] = Field(default_factory=list)
    instructions: List[str]


class RecipeMatch(BaseModel):
    recipe: Recipe
    matched_ingredients: List[str]
    missing_ingredients: List[str]

    @property
    def score(self) -> int:
        return len(self.matched_ingredients)


RECIPE_CATALOGUE: List[Recipe] = [
    Recipe(
        id="1",
        name="Fresh Garden Salad",
        image="salad",
        time="10 mins",
        difficulty="Easy",
        key_ingredients=["lettuce", "tomato", "cucumber", "onion"],
        extras=["olive oil", "vinegar"],
        instructions=[
            "Wash and chop all vegetables",
            "Combine in a large bowl",
            "Drizzle with olive oil and vinegar",
            "Season with salt and pepper to taste",
        ],
    ),
    Recipe(
        id="2",
        name="Veggie Stir Fry",
        image="stirfry",
        time="20 mins",
        difficulty="Easy",
        key_ingredients=["carrot", "broccoli", "bell pepper", "garlic"],
        extras=["soy sauce", "sesame oil"],
        instructions=[
            "Chop vegetables into bite-sized pieces",
            "Heat oil in a wok or large pan",
            "Stir fry garlic until fragrant",
            "Add vegetables and cook for 5-7 minutes",
            "Season with soy sauce and serve",
        ],
    ),
    Recipe(
        id="3",
        name="Tomato Pasta",
        image="pasta",
        time="25 mins",
        difficulty="Easy",
        key_ingredients=["tomato", "garlic", "onion", "pasta"],
        extras=["basil", "parmesan"],
        instructions=[
            "Cook pasta according to package instructions",
            "Sauté garlic and onion until soft",
            "Add diced tomatoes and simmer for 10 mins",
            "Combine with pasta and top with basil and cheese",
        ],
    ),
    Recipe(
        id="4",
        name="Banana Smoothie",
        image="smoothie",
        time="5 mins",
        difficulty="Easy",
        key_ingredients=["banana", "milk", "honey"],
        extras=["ice"],
        instructions=[
            "Add banana, milk, and honey to blender",
            "Add ice cubes",
            "Blend until smooth",
            "Pour and enjoy!",
        ],
    ),
    Recipe(
        id="5",
        name="Egg Fried Rice",
        image="rice",
        time="15 mins",
        difficulty="Medium",
        key_ingredients=["rice", "egg", "carrot", "peas", "onion"],
        extras=["soy sauce", "sesame oil"],
        instructions=[
            "Cook rice and let it cool (or use day-old rice)",
            "Scramble eggs in a pan and set aside",
            "Stir fry vegetables until tender",
            "Add rice and eggs, mix well",
            "Season with soy sauce and serve",
        ],
    ),
    Recipe(
        id="6",
        name="Cheese Sandwich",
        image="sandwich",
        time="5 mins",
        difficulty="Easy",
        key_ingredients=["bread", "cheese", "butter"],
        instructions=[
            "Butter two slices of bread",
            "Add cheese between slices",
            "Grill or toast until cheese melts",
            "Cut in half and serve",
        ],
    ),
    Recipe(
        id="7",
        name="Vegetable Soup",
        image="soup",
        time="30 mins",
        difficulty="Medium",
        key_ingredients=["carrot", "potato", "onion", "celery"],
        extras=["vegetable broth", "herbs"],
        instructions=[
            "Chop all vegetables",
            "Sauté onion until translucent",
            "Add other vegetables and broth",
            "Simmer for 20-25 minutes",
            "Season and serve hot",
        ],
    ),
    Recipe(
        id="8",
        name="Fruit Yogurt Bowl",
        image="bowl",
        time="5 mins",
        difficulty="Easy",
        key_ingredients=["yogurt", "banana", "apple", "honey"],
        extras=["granola"],
        instructions=[
            "Add yogurt to a bowl",
            "Slice fruits on top",
            "Drizzle with honey",
            "Add granola for crunch",
        ],
    ),
]

COMMON_INGREDIENTS = [
    "tomato", "onion", "garlic", "carrot", "potato", "lettuce", "cucumber",
    "bell pepper", "broccoli", "egg", "cheese", "bread", "rice", "pasta",
    "chicken", "beef", "fish", "banana", "apple", "milk", "yogurt", "butter",
    "honey", "lemon", "ginger", "celery", "mushroom", "spinach", "peas",
]


def normalize_ingredients(raw: Iterable[str]) -> List[str]:
    """Split on commas, lower-case, trim and de-duplicate, keeping first-seen order."""
    seen: List[str] = []
    for item in raw:
        for part in item.split(","):
            name = part.strip().lower()
            if name and name not in seen:
                seen.append(name)
    return seen


def suggest_ingredients(prefix: str, chosen: Iterable[str], limit: int = 6) -> List[str]:
    chosen = {c.lower() for c in chosen}
    needle = prefix.strip().lower()
    return [
        ing for ing in COMMON_INGREDIENTS if needle in ing and ing not in chosen
    ][:limit]


def find_recipes(ingredients: Iterable[str]) -> List[RecipeMatch]:
    """Rank catalogue recipes by how many key ingredients the user has.

    Recipes with no matching ingredient are dropped; ties keep catalogue order.
    """
    have = normalize_ingredients(ingredients)
    matches: List[RecipeMatch] = []
    for recipe in RECIPE_CATALOGUE:
        matched = [
            ing
            for ing in recipe.key_ingredients
            if any(user_ing in ing or ing in user_ing for user_ing in have)
        ]
        if not matched:
            continue
        matches.append(
            RecipeMatch(
                recipe=recipe,
                matched_ingredients=matched,
                missing_ingredients=[
                    ing for ing in recipe.key_ingredients if ing not in matched
                ],
            )
        )
    return sorted(matches, key=lambda m: m.score, reverse=True)
