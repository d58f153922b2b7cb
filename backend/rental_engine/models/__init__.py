from .user import User
from .equipment import Equipment
from .product_template import ProductTemplate
from .accessory import Accessory
from .pricing_modifier import PricingModifier
from .rental import Rental
from .rental_accessory import RentalAccessory
from .reservation_day import ReservationDay
from .deposit_event import DepositEvent

__all__ = [
    "User",
    "Equipment",
    "ProductTemplate",
    "Accessory",
    "PricingModifier",
    "Rental",
    "RentalAccessory",
    "ReservationDay",
    "DepositEvent",
]
