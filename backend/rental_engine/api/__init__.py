from .rental_routes import bp as rentals_bp
from .availability_routes import bp as availability_bp
from .catalog_routes import bp as catalog_bp

__all__ = [
    "rentals_bp",
    "availability_bp",
    "catalog_bp",
]
