from sqlalchemy import BigInteger, Column, String
from ..database import Base


class CartItem(Base):
    __tablename__ = "CartItems"

    user_id = Column("userId", String, nullable=False, index=True)
    product_id = Column("productId", String, nullable=False)
    quantity = Column("quantity", BigInteger, nullable=False, default=0)

    # Логический ключ (userId, productId) объявлен только на уровне маппера:
    # уникальность в таблице не обеспечивается, дубликаты суммируются
    __mapper_args__ = {"primary_key": [user_id, product_id]}
