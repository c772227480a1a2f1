from pydantic import BaseModel, NonNegativeInt, PositiveInt


class CartItemBase(BaseModel):
    product_id: str


class CartItemCreate(CartItemBase):
    quantity: PositiveInt


class CartItem(CartItemBase):
    quantity: NonNegativeInt

    class Config:
        from_attributes = True
