"""
Variant DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Literal, Optional
from datetime import datetime


def normalize_sku(value: Optional[str]) -> Optional[str]:
    """Trim a SKU; a SKU of only whitespace is rejected"""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("SKU must not be blank")
    return value


class VariantOptionInput(BaseModel):
    """One (option, value) pair selecting a variant's value for that option"""

    optionName: str = Field(..., min_length=1, max_length=50)
    value: str = Field(..., min_length=1, max_length=100)


class CreateVariantRequest(BaseModel):
    """DTO for creating a single variant"""

    sku: str = Field(..., min_length=1, max_length=100)
    price: float = Field(..., gt=0)
    stock: Optional[int] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    allowPurchase: bool = True
    isPopular: bool = False
    isDefault: bool = False
    options: List[VariantOptionInput] = Field(default_factory=list)

    @field_validator("sku")
    @classmethod
    def strip_sku(cls, value):
        return normalize_sku(value)


class UpdateVariantRequest(BaseModel):
    """DTO for updating a variant; only fields that are sent change"""

    sku: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, gt=0)
    stock: Optional[int] = Field(None, ge=0)
    images: Optional[List[str]] = None
    allowPurchase: Optional[bool] = None
    isPopular: Optional[bool] = None
    isDefault: Optional[bool] = None

    @field_validator("sku")
    @classmethod
    def strip_sku(cls, value):
        return normalize_sku(value)


class BulkUpdateVariantItem(UpdateVariantRequest):
    id: int


class BulkUpdateVariantsRequest(BaseModel):
    variants: List[BulkUpdateVariantItem]


class BulkCreateVariantsRequest(BaseModel):
    variants: List[CreateVariantRequest]


class DefaultVariantSettings(BaseModel):
    """Field values shared by auto-generated variants"""

    price: float = Field(..., gt=0)
    stock: Optional[int] = Field(None, ge=0)
    images: List[str] = Field(default_factory=list)
    allowPurchase: bool = True
    isPopular: bool = False


class UpdateStockRequest(BaseModel):
    stock: int = Field(..., ge=0)
    operation: Literal["set", "add", "subtract"] = "set"


class UpdateStockResponse(BaseModel):
    variantId: int
    sku: str
    stock: int
    inStock: bool


class SelectedOptionResponse(BaseModel):
    optionId: int
    optionName: str
    optionDisplayName: str
    valueId: int
    value: str
    valueDisplayName: str
    colorCode: Optional[str] = None


class VariantResponse(BaseModel):
    id: int
    productId: int
    sku: str
    price: float
    images: List[str]
    allowPurchase: bool
    stock: Optional[int] = None
    inStock: bool
    isPopular: bool
    isDefault: bool
    selectedOptions: List[SelectedOptionResponse] = Field(default_factory=list)
    createdAt: datetime
    updatedAt: datetime


class ProductBasicResponse(BaseModel):
    id: int
    name: str
    brand: Optional[str] = None


class VariantDetailResponse(VariantResponse):
    """Variant with its selected options and the owning product's basics"""

    product: ProductBasicResponse


class BulkUpdatedVariant(BaseModel):
    id: int
    sku: str
    price: float
    stock: Optional[int] = None
    inStock: bool
    allowPurchase: bool
    isDefault: bool


class BulkUpdateVariantsResponse(BaseModel):
    updatedCount: int
    variants: List[BulkUpdatedVariant]


class BulkCreateVariantsResponse(BaseModel):
    createdCount: int
    variants: List[VariantResponse]


class VariantAggregationResponse(BaseModel):
    hasVariants: bool
    totalVariants: int
    minPrice: Optional[float] = None
    maxPrice: Optional[float] = None
    mainImage: Optional[str] = None
    allowPurchase: bool
    inStock: bool
    totalStock: Optional[int] = None
    optionNames: List[str] = Field(default_factory=list)
    optionValues: Dict[str, List[str]] = Field(default_factory=dict)


class ListVariantsQuery(BaseModel):
    """Filters, sorting and paging for the variant listing"""

    page: Optional[int] = None
    pageSize: Optional[int] = None
    sortBy: Literal["price", "created_at", "updated_at"] = "created_at"
    sortOrder: Literal["asc", "desc"] = "desc"
    ids: Optional[List[int]] = None
    productIds: Optional[List[int]] = None
    minPrice: Optional[float] = Field(None, ge=0)
    maxPrice: Optional[float] = Field(None, ge=0)
    allowPurchase: Optional[bool] = None
    isPopular: Optional[bool] = None
    isDefault: Optional[bool] = None
    sku: Optional[str] = None


class VariantListResponse(BaseModel):
    variants: List[VariantResponse]
    total: int
    page: int
    pageSize: int
