# Models package
from laundry.models.user import Customer, ActorRole
from laundry.models.laundry import Laundry, AccountStatus
from laundry.models.catalog import ServiceCategory, ClothingItem, LaundryPricing, PriceUnit
from laundry.models.order import (
    Order, OrderItem, OrderStatus, OrderType, PickupType, PaymentStatus, PaymentMethod, CancelledBy
)
from laundry.models.payment import Payment
from laundry.models.timeline import OrderTimeline, OrderStatusHistory
from laundry.models.promo import PromoCode, DiscountType
from laundry.models.notification import Notification, NotificationType
