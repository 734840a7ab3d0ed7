"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from address_timeline.models.address import Address
from address_timeline.models.address_assignment import AddressAssignment
from address_timeline.models.user import User

__all__ = [
    "Address",
    "AddressAssignment",
    "User",
]
