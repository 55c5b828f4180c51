"""DTO dataclasses only. Mapping logic lives in mappers.py."""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class ProductListItemDTO:
    id: int
    name: str
    basePrice: float
    preparationTime: Optional[str]
    primaryImageUrl: Optional[str]


@dataclass
class ImageDTO:
    id: int
    imageUrl: str
    isPrimary: bool


@dataclass
class FlavorDTO:
    id: int
    name: str


@dataclass
class SizeDTO:
    id: int
    name: str
    description: Optional[str]
    priceModifier: float


@dataclass
class ProductDetailDTO:
    id: int
    name: str
    description: Optional[str]
    ingredients: List[str]
    basePrice: float
    preparationTime: Optional[str]
    categoryId: Optional[int]
    categoryName: Optional[str]
    images: List[ImageDTO] = field(default_factory=list)
    flavors: List[FlavorDTO] = field(default_factory=list)
    sizes: List[SizeDTO] = field(default_factory=list)


@dataclass
class PaginationDTO:
    currentPage: int
    pageSize: int
    totalItems: int
    totalPages: int


@dataclass
class ProductListDTO:
    products: List[ProductListItemDTO]
    pagination: PaginationDTO
