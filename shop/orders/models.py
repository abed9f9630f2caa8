# module shop.orders.models
"""
Modèles du checkout (pydantic).
- CartItem / CartSnapshot: lecture figée d'un panier, copiée telle quelle dans la commande.
- OrderTotals: détail des montants calculé par shop.orders.pricing.
- CashOrderRequest / CheckoutSessionRequest: corps des requêtes HTTP.
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"


class OrderStatus(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class CartStatus(str, Enum):
    ACTIVE = "active"
    CONSUMED = "consumed"


class CartItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str = ""
    price: float = Field(default=0, ge=0)
    quantity: int = Field(default=1, ge=1)
    image: Optional[str] = None


class CartSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: Optional[str] = None
    items: List[CartItem] = Field(default_factory=list)
    address: Optional[str] = None
    discount: float = 0
    coupon_code: Optional[str] = None
    coupon_discount: float = 0
    points_used: float = 0
    shipping_fee: float = 0
    tips: float = 0
    status: CartStatus = CartStatus.ACTIVE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CartSnapshot":
        """Construit un snapshot depuis une ligne 'carts' (colonnes nulles => 0 / None)."""
        data = dict(row or {})
        for key in ("discount", "coupon_discount", "points_used", "shipping_fee", "tips"):
            if data.get(key) is None:
                data[key] = 0
        data["id"] = str(data.get("id") or "")
        if data.get("user_id") is not None:
            data["user_id"] = str(data["user_id"])
        data["items"] = data.get("items") or []
        data["status"] = data.get("status") or CartStatus.ACTIVE
        return cls.model_validate(data)


class OrderTotals(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_items: int
    total_price: float
    discount: float = 0
    coupon_code: Optional[str] = None
    coupon_discount: float = 0
    shipping_fee: float = 0
    tips: float = 0
    points_used: float = 0
    final_total: float


# Adresse sérialisée en JSON dans une métadonnée Stripe (500 caractères max)
SHIPPING_ADDRESS_MAX_LENGTH = 300


class ShippingAddress(BaseModel):
    address: str = Field(min_length=1, max_length=SHIPPING_ADDRESS_MAX_LENGTH)
    lat: Optional[float] = None
    lng: Optional[float] = None


class CashOrderRequest(BaseModel):
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")
    completed_payment: bool = Field(default=False, alias="completedPayment")
    payment_method: PaymentMethod = Field(default=PaymentMethod.CASH, alias="paymentMethod")

    model_config = ConfigDict(populate_by_name=True)


class CheckoutSessionRequest(BaseModel):
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")

    model_config = ConfigDict(populate_by_name=True)
