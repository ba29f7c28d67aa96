from decimal import Decimal

from pydantic import BaseModel


class ProductRead(BaseModel):
    id: int
    sku: str
    name: str

    stock_qty: int  # READ ONLY : modifié uniquement par réservation / annulation
    price: Decimal

    class Config:
        from_attributes = True
