"""
Product option DTOs (Data Transfer Objects)
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class OptionValueInput(BaseModel):
    """A value to attach to an option"""

    value: str = Field(..., min_length=1, max_length=100)
    displayName: Optional[str] = Field(None, max_length=100)
    colorCode: Optional[str] = Field(None, min_length=7, max_length=7)
    position: Optional[int] = Field(None, ge=0)


class CreateOptionRequest(BaseModel):
    """DTO for adding an option (with optional initial values) to a product"""

    name: str = Field(..., min_length=2, max_length=50)
    displayName: Optional[str] = Field(None, max_length=100)
    position: Optional[int] = Field(None, ge=0)
    values: List[OptionValueInput] = Field(default_factory=list)


class UpdateOptionRequest(BaseModel):
    """DTO for updating option presentation; the name is immutable"""

    displayName: Optional[str] = Field(None, min_length=1, max_length=100)
    position: Optional[int] = Field(None, ge=0)


class BulkUpdateOptionItem(UpdateOptionRequest):
    id: int


class BulkUpdateOptionsRequest(BaseModel):
    options: List[BulkUpdateOptionItem] = Field(..., min_length=1)


class UpdateOptionValueRequest(BaseModel):
    """DTO for updating value presentation; the value itself is immutable"""

    displayName: Optional[str] = Field(None, min_length=1, max_length=100)
    colorCode: Optional[str] = Field(None, min_length=7, max_length=7)
    position: Optional[int] = Field(None, ge=0)


class BulkUpdateOptionValueItem(UpdateOptionValueRequest):
    id: int


class BulkUpdateOptionValuesRequest(BaseModel):
    values: List[BulkUpdateOptionValueItem] = Field(..., min_length=1)


class BulkAddOptionValuesRequest(BaseModel):
    values: List[OptionValueInput] = Field(..., min_length=1)


class OptionValueResponse(BaseModel):
    id: int
    optionId: int
    value: str
    displayName: str
    colorCode: Optional[str] = None
    position: int
    variantCount: int = 0


class OptionResponse(BaseModel):
    id: int
    productId: int
    name: str
    displayName: str
    position: int
    values: List[OptionValueResponse] = Field(default_factory=list)


class AvailableOptionsResponse(BaseModel):
    """Options of a product with the number of variants using each value"""

    productId: int
    options: List[OptionResponse]
