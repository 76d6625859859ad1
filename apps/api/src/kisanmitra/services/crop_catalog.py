"""Static crop catalog bundled with the package."""

import csv
from functools import lru_cache
from importlib import resources

from kisanmitra.core.models import Crop, CropCategory


@lru_cache
def all_crops() -> tuple[Crop, ...]:
    """Every crop in catalog order."""
    source = resources.files("kisanmitra").joinpath("data/crops.csv")
    with source.open(encoding="utf-8", newline="") as f:
        return tuple(
            Crop(name=row["name"].strip(), category=row["category"].strip())
            for row in csv.DictReader(f)
            if row.get("name")
        )


def crops_by_category() -> list[CropCategory]:
    """Categories sorted by name, each with its crops sorted by name."""
    grouped: dict[str, list[Crop]] = {}
    for crop in all_crops():
        grouped.setdefault(crop.category, []).append(crop)

    return [
        CropCategory(name=name, crops=sorted(crops, key=lambda c: c.name))
        for name, crops in sorted(grouped.items())
    ]


def search_crops(query: str) -> list[Crop]:
    """Case-insensitive substring match on crop name or category."""
    needle = query.strip().lower()
    if not needle:
        return list(all_crops())
    return [
        crop
        for crop in all_crops()
        if needle in crop.name.lower() or needle in crop.category.lower()
    ]


def crop_names() -> list[str]:
    return [crop.name for crop in all_crops()]
