"""Category catalog: the fixed set of themes players pick their items from."""

from dataclasses import dataclass
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Category:
    name: str
    icon: str
    items: List[str]


CATEGORIES: List[Category] = [
    Category('animals', '🦁', ['Tiger', 'Lion', 'Cat', 'Dog', 'Elephant', 'Bear', 'Wolf', 'Fox']),
    Category('colors', '🎨', ['Red', 'Blue', 'Green', 'Yellow', 'Purple', 'Orange', 'Pink', 'Black']),
    Category('fruits', '🍎', ['Apple', 'Banana', 'Orange', 'Grape', 'Strawberry', 'Mango', 'Kiwi', 'Pineapple']),
    Category('vehicles', '🚗', ['Car', 'Truck', 'Bike', 'Bus', 'Train', 'Plane', 'Boat', 'Motorcycle']),
    Category('sports', '🏅', ['Soccer', 'Basketball', 'Tennis', 'Baseball', 'Cricket', 'Rugby', 'Golf', 'Hockey']),
    Category('countries', '🌍', ['USA', 'Canada', 'Brazil', 'Germany', 'India', 'Japan', 'Australia', 'France']),
    Category('instruments', '🎵', ['Guitar', 'Piano', 'Violin', 'Drums', 'Flute', 'Saxophone', 'Trumpet', 'Cello']),
]

_BY_NAME: Dict[str, Category] = {c.name: c for c in CATEGORIES}


def get_category(name: Optional[str]) -> Optional[Category]:
    if not name:
        return None
    return _BY_NAME.get(name.lower())


def free_items(category: Category, taken: List[str]) -> List[str]:
    """Items of the category nobody has claimed yet, in catalog order."""
    return [item for item in category.items if item not in taken]
