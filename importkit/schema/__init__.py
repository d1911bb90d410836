"""Product import schema: well-known column names and the product field table."""

from datetime import datetime, timezone
from typing import List, Tuple

from ..converters import FieldKind, zero_to_none
from ..domain import PRODUCT_TYPE_SIMPLE
from ..fields import FieldSpec, field_spec

# Candidate identity keys, in resolution priority order
ID_COLUMN = "Id"
SKU_COLUMN = "Sku"
GTIN_COLUMN = "Gtin"

# Display name; required in the table schema before new products can be created
NAME_COLUMN = "Name"

SENAME_COLUMN = "SeName"
CATEGORY_IDS_COLUMN = "CategoryIds"
MANUFACTURER_IDS_COLUMN = "ManufacturerIds"
STORE_IDS_COLUMN = "StoreIds"
PICTURE_COLUMN_PREFIX = "Picture"
DEFAULT_MAX_PICTURES = 3

PRODUCT_ENTITY_NAME = "Product"

# Columns that may carry a language-qualified value (Name[de], ...),
# mapped to the product attribute holding the standard-language value
LOCALIZABLE_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("Name", "name"),
    ("ShortDescription", "short_description"),
    ("FullDescription", "full_description"),
    ("MetaKeywords", "meta_keywords"),
    ("MetaDescription", "meta_description"),
    ("MetaTitle", "meta_title"),
)


def picture_columns(max_pictures: int = DEFAULT_MAX_PICTURES) -> List[str]:
    """Picture1..PictureN column names."""
    return [f"{PICTURE_COLUMN_PREFIX}{i}" for i in range(1, max_pictures + 1)]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Order matters only for readability; each entry is applied independently.
PRODUCT_FIELDS: List[FieldSpec] = [
    field_spec("Sku", "sku"),
    field_spec("Gtin", "gtin"),
    field_spec("ManufacturerPartNumber", "manufacturer_part_number"),
    field_spec("ProductTypeId", "product_type_id", FieldKind.INT, default=PRODUCT_TYPE_SIMPLE),
    field_spec("ParentGroupedProductId", "parent_grouped_product_id", FieldKind.INT),
    field_spec("VisibleIndividually", "visible_individually", FieldKind.BOOL, default=True),
    field_spec("Name", "name"),
    field_spec("ShortDescription", "short_description"),
    field_spec("FullDescription", "full_description"),
    field_spec("ProductTemplateId", "product_template_id", FieldKind.INT),
    field_spec("ShowOnHomePage", "show_on_home_page", FieldKind.BOOL),
    field_spec("HomePageDisplayOrder", "home_page_display_order", FieldKind.INT),
    field_spec("MetaKeywords", "meta_keywords"),
    field_spec("MetaDescription", "meta_description"),
    field_spec("MetaTitle", "meta_title"),
    field_spec("AllowCustomerReviews", "allow_customer_reviews", FieldKind.BOOL, default=True),
    field_spec("Published", "published", FieldKind.BOOL, default=True),
    field_spec("IsGiftCard", "is_gift_card", FieldKind.BOOL),
    field_spec("IsDownload", "is_download", FieldKind.BOOL),
    field_spec("DownloadId", "download_id", FieldKind.INT),
    field_spec("UnlimitedDownloads", "unlimited_downloads", FieldKind.BOOL, default=True),
    field_spec("MaxNumberOfDownloads", "max_number_of_downloads", FieldKind.INT, default=10),
    field_spec("DownloadActivationTypeId", "download_activation_type_id", FieldKind.INT, default=1),
    field_spec("HasSampleDownload", "has_sample_download", FieldKind.BOOL),
    field_spec("SampleDownloadId", "sample_download_id", FieldKind.INT, transform=zero_to_none),
    field_spec("IsRecurring", "is_recurring", FieldKind.BOOL),
    field_spec("RecurringCycleLength", "recurring_cycle_length", FieldKind.INT, default=100),
    field_spec("RecurringTotalCycles", "recurring_total_cycles", FieldKind.INT, default=10),
    field_spec("IsShipEnabled", "is_ship_enabled", FieldKind.BOOL, default=True),
    field_spec("IsFreeShipping", "is_free_shipping", FieldKind.BOOL),
    field_spec("AdditionalShippingCharge", "additional_shipping_charge", FieldKind.DECIMAL),
    field_spec("IsTaxExempt", "is_tax_exempt", FieldKind.BOOL),
    field_spec("TaxCategoryId", "tax_category_id", FieldKind.INT, default=1),
    field_spec("ManageInventoryMethodId", "manage_inventory_method_id", FieldKind.INT),
    field_spec("StockQuantity", "stock_quantity", FieldKind.INT, default=10000),
    field_spec("MinStockQuantity", "min_stock_quantity", FieldKind.INT),
    field_spec("NotifyAdminForQuantityBelow", "notify_admin_for_quantity_below", FieldKind.INT, default=1),
    field_spec("OrderMinimumQuantity", "order_minimum_quantity", FieldKind.INT, default=1),
    field_spec("OrderMaximumQuantity", "order_maximum_quantity", FieldKind.INT, default=10000),
    field_spec("AllowedQuantities", "allowed_quantities"),
    field_spec("DeliveryTimeId", "delivery_time_id", FieldKind.INT, transform=zero_to_none),
    field_spec("DisableBuyButton", "disable_buy_button", FieldKind.BOOL),
    field_spec("DisableWishlistButton", "disable_wishlist_button", FieldKind.BOOL),
    field_spec("CallForPrice", "call_for_price", FieldKind.BOOL),
    field_spec("Price", "price", FieldKind.DECIMAL),
    field_spec("OldPrice", "old_price", FieldKind.DECIMAL),
    field_spec("ProductCost", "product_cost", FieldKind.DECIMAL),
    field_spec("SpecialPrice", "special_price", FieldKind.DECIMAL),
    field_spec("SpecialPriceStartDateTimeUtc", "special_price_start_date_time_utc", FieldKind.DATETIME),
    field_spec("SpecialPriceEndDateTimeUtc", "special_price_end_date_time_utc", FieldKind.DATETIME),
    field_spec("Weight", "weight", FieldKind.DECIMAL),
    field_spec("Length", "length", FieldKind.DECIMAL),
    field_spec("Width", "width", FieldKind.DECIMAL),
    field_spec("Height", "height", FieldKind.DECIMAL),
    field_spec("AvailableStartDateTimeUtc", "available_start_date_time_utc", FieldKind.DATETIME),
    field_spec("AvailableEndDateTimeUtc", "available_end_date_time_utc", FieldKind.DATETIME),
    field_spec("LimitedToStores", "limited_to_stores", FieldKind.BOOL),
]

# Applied after store mappings, like the rest of the audit fields
CREATED_ON_FIELD: FieldSpec = field_spec(
    "CreatedOnUtc", "created_on_utc", FieldKind.DATETIME, default_factory=_utc_now
)

__all__ = [
    "ID_COLUMN",
    "SKU_COLUMN",
    "GTIN_COLUMN",
    "NAME_COLUMN",
    "SENAME_COLUMN",
    "CATEGORY_IDS_COLUMN",
    "MANUFACTURER_IDS_COLUMN",
    "STORE_IDS_COLUMN",
    "PICTURE_COLUMN_PREFIX",
    "DEFAULT_MAX_PICTURES",
    "PRODUCT_ENTITY_NAME",
    "LOCALIZABLE_FIELDS",
    "PRODUCT_FIELDS",
    "CREATED_ON_FIELD",
    "picture_columns",
]
