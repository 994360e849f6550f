# Import all models here to ensure they're loaded together
# This prevents circular import issues with relationships

from ecommerce.core.db.base import Base, BaseModel
from ecommerce.modules.users.models import User
from ecommerce.modules.products.models import Product
from ecommerce.modules.product_options.models import ProductOption, ProductOptionValue
from ecommerce.modules.variants.models import ProductVariant, VariantOptionValue

# Export for easy importing
__all__ = [
    "Base",
    "BaseModel",
    "User",
    "Product",
    "ProductOption",
    "ProductOptionValue",
    "ProductVariant",
    "VariantOptionValue",
]
