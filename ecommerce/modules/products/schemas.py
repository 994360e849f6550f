"""
Product DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime

from ecommerce.modules.product_options.schemas import CreateOptionRequest, OptionResponse
from ecommerce.modules.variants.schemas import (
    CreateVariantRequest,
    DefaultVariantSettings,
    VariantAggregationResponse,
    VariantResponse,
    normalize_sku,
)


class CreateProductRequest(BaseModel):
    """
    DTO for creating a product together with its options and variants.

    Either list the variants explicitly or set autoGenerateVariants and
    provide defaultVariantSettings to create one variant per combination of
    option values.
    """

    name: str = Field(..., min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    baseSku: Optional[str] = Field(None, min_length=1, max_length=100)
    categoryId: Optional[int] = None
    shortDescription: Optional[str] = None
    longDescription: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    # Required when an admin creates a product on behalf of a seller
    sellerId: Optional[int] = None
    options: List[CreateOptionRequest] = Field(default_factory=list)
    variants: List[CreateVariantRequest] = Field(default_factory=list)
    autoGenerateVariants: bool = False
    defaultVariantSettings: Optional[DefaultVariantSettings] = None

    @field_validator("baseSku")
    @classmethod
    def strip_base_sku(cls, value):
        return normalize_sku(value)


class UpdateProductRequest(BaseModel):
    """DTO for updating product information"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    brand: Optional[str] = Field(None, max_length=255)
    categoryId: Optional[int] = None
    shortDescription: Optional[str] = None
    longDescription: Optional[str] = None
    tags: Optional[List[str]] = None


class ProductResponse(BaseModel):
    """Response model for Product entity"""

    id: int
    sellerId: int
    name: str
    brand: Optional[str] = None
    baseSku: Optional[str] = None
    categoryId: Optional[int] = None
    shortDescription: Optional[str] = None
    longDescription: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    createdAt: datetime
    updatedAt: datetime


class ProductListItemResponse(ProductResponse):
    variantSummary: VariantAggregationResponse


class ProductDetailResponse(ProductResponse):
    """Product with its options, variants and variant summary"""

    options: List[OptionResponse]
    variants: List[VariantResponse]
    variantSummary: VariantAggregationResponse


class ProductListResponse(BaseModel):
    items: List[ProductListItemResponse]
    total: int
    page: int
    pageSize: int
    totalPages: int
    hasMore: bool
