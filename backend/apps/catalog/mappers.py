"""Row -> DTO mapping for stored routine output.

Column names follow the database (``idProduct``, ``ingredientsJson``, ...);
DTO field names follow the public API.
"""
import json
from typing import Any, Iterable, List, Mapping, Optional

from .dtos import (
    FlavorDTO,
    ImageDTO,
    ProductDetailDTO,
    ProductListItemDTO,
    SizeDTO,
)

Row = Mapping[str, Any]


def _as_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def _as_text(value: Any) -> Optional[str]:
    return None if value is None else str(value)


def decode_ingredients(raw: Any) -> List[str]:
    """Decode the ``ingredientsJson`` column into an ordered list of strings.

    Absent, null or blank text decodes to ``[]`` and null entries are
    dropped. Text that is not a JSON array raises ``ValueError``.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        items = raw
    else:
        text = str(raw).strip()
        if not text:
            return []
        items = json.loads(text)
        if not isinstance(items, list):
            raise ValueError(
                f"ingredientsJson must encode a JSON array, got {type(items).__name__}"
            )
    return [str(item) for item in items if item is not None]


class ProductListItemMapper:
    @staticmethod
    def to_dto(row: Row) -> ProductListItemDTO:
        return ProductListItemDTO(
            id=row["idProduct"],
            name=row["name"],
            basePrice=_as_float(row.get("basePrice")),
            preparationTime=_as_text(row.get("preparationTime")),
            primaryImageUrl=row.get("primaryImageUrl"),
        )

    @staticmethod
    def many_to_dto(rows: Iterable[Row]) -> List[ProductListItemDTO]:
        return [ProductListItemMapper.to_dto(r) for r in rows]


class ImageMapper:
    @staticmethod
    def to_dto(row: Row) -> ImageDTO:
        return ImageDTO(
            id=row["idProductImage"],
            imageUrl=row["imageUrl"],
            isPrimary=bool(row.get("isPrimary")),
        )


class FlavorMapper:
    @staticmethod
    def to_dto(row: Row) -> FlavorDTO:
        return FlavorDTO(id=row["idFlavor"], name=row["name"])


class SizeMapper:
    @staticmethod
    def to_dto(row: Row) -> SizeDTO:
        return SizeDTO(
            id=row["idSize"],
            name=row["name"],
            description=row.get("description"),
            priceModifier=_as_float(row.get("priceModifier")) or 0.0,
        )


class ProductDetailMapper:
    @staticmethod
    def to_dto(
        row: Row,
        *,
        images: Optional[Iterable[Row]] = None,
        flavors: Optional[Iterable[Row]] = None,
        sizes: Optional[Iterable[Row]] = None,
    ) -> ProductDetailDTO:
        return ProductDetailDTO(
            id=row["idProduct"],
            name=row["name"],
            description=row.get("description"),
            ingredients=decode_ingredients(row.get("ingredientsJson")),
            basePrice=_as_float(row.get("basePrice")),
            preparationTime=_as_text(row.get("preparationTime")),
            categoryId=row.get("idCategory"),
            categoryName=row.get("categoryName"),
            images=[ImageMapper.to_dto(r) for r in images or []],
            flavors=[FlavorMapper.to_dto(r) for r in flavors or []],
            sizes=[SizeMapper.to_dto(r) for r in sizes or []],
        )
