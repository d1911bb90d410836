"""
Catalog domain records touched by the product import.

A Product gets its ``id`` from the entity store when its insert is
committed. Every secondary record references a product by that id, so a
product without an id must never reach a dependent processor.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

# Product type id of a plain product
PRODUCT_TYPE_SIMPLE = 5


@dataclass
class Product:
    id: Optional[int] = None

    # Identity
    sku: Optional[str] = None
    gtin: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    product_type_id: int = PRODUCT_TYPE_SIMPLE
    parent_grouped_product_id: int = 0
    visible_individually: bool = True

    # Texts
    name: Optional[str] = None
    short_description: Optional[str] = None
    full_description: Optional[str] = None
    meta_keywords: Optional[str] = None
    meta_description: Optional[str] = None
    meta_title: Optional[str] = None

    # Presentation
    product_template_id: int = 0
    show_on_home_page: bool = False
    home_page_display_order: int = 0
    allow_customer_reviews: bool = True
    published: bool = True

    # Downloads and recurring
    is_gift_card: bool = False
    is_download: bool = False
    download_id: int = 0
    unlimited_downloads: bool = True
    max_number_of_downloads: int = 10
    download_activation_type_id: int = 1
    has_sample_download: bool = False
    sample_download_id: Optional[int] = None
    is_recurring: bool = False
    recurring_cycle_length: int = 100
    recurring_total_cycles: int = 10

    # Shipping and tax
    is_ship_enabled: bool = True
    is_free_shipping: bool = False
    additional_shipping_charge: Decimal = Decimal("0")
    is_tax_exempt: bool = False
    tax_category_id: int = 1

    # Inventory
    manage_inventory_method_id: int = 0
    stock_quantity: int = 10000
    min_stock_quantity: int = 0
    notify_admin_for_quantity_below: int = 1
    order_minimum_quantity: int = 1
    order_maximum_quantity: int = 10000
    allowed_quantities: Optional[str] = None
    delivery_time_id: Optional[int] = None

    # Pricing
    disable_buy_button: bool = False
    disable_wishlist_button: bool = False
    call_for_price: bool = False
    price: Decimal = Decimal("0")
    old_price: Decimal = Decimal("0")
    product_cost: Decimal = Decimal("0")
    special_price: Optional[Decimal] = None
    special_price_start_date_time_utc: Optional[datetime] = None
    special_price_end_date_time_utc: Optional[datetime] = None

    # Dimensions
    weight: Decimal = Decimal("0")
    length: Decimal = Decimal("0")
    width: Decimal = Decimal("0")
    height: Decimal = Decimal("0")

    # Availability
    available_start_date_time_utc: Optional[datetime] = None
    available_end_date_time_utc: Optional[datetime] = None
    limited_to_stores: bool = False

    created_on_utc: Optional[datetime] = None
    updated_on_utc: Optional[datetime] = None


@dataclass
class UrlRecord:
    """SEO slug of an entity for one language (0 = standard language)."""
    entity_id: int
    entity_name: str
    slug: str
    language_id: int = 0
    is_active: bool = True
    id: Optional[int] = None


@dataclass
class Language:
    id: int
    name: str
    unique_seo_code: str
    published: bool = True
    display_order: int = 0


@dataclass
class LocalizedProperty:
    entity_id: int
    locale_key_group: str
    locale_key: str
    language_id: int
    locale_value: str
    id: Optional[int] = None


@dataclass
class ProductCategory:
    product_id: int
    category_id: int
    is_featured_product: bool = False
    display_order: int = 1
    id: Optional[int] = None


@dataclass
class ProductManufacturer:
    product_id: int
    manufacturer_id: int
    is_featured_product: bool = False
    display_order: int = 1
    id: Optional[int] = None


@dataclass
class Picture:
    picture_binary: bytes = field(repr=False, default=b"")
    mime_type: str = "image/jpeg"
    seo_filename: Optional[str] = None
    id: Optional[int] = None


@dataclass
class ProductPicture:
    product_id: int
    picture_id: int
    display_order: int = 1
    id: Optional[int] = None
