from pydantic import BaseModel, Field
from typing import List
from .cart_item import CartItem


class Cart(BaseModel):
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
