import enum


class OrderStatus(str, enum.Enum):
    pending = "PENDING"
    confirmed = "CONFIRMED"
    cancelled = "CANCELLED"


# Statuts depuis lesquels une annulation est permise
CANCELLABLE_STATUSES = {
    OrderStatus.pending,
    OrderStatus.confirmed,
}
