"""Хранилище корзин покупок с транзакционным добавлением товаров."""
