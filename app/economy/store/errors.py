class StoreError(Exception):
    pass


class StoreNotFoundError(StoreError):
    pass


class InsufficientFundsError(StoreError):
    def __init__(self, *, balance: int, price: int) -> None:
        self.balance = balance
        self.price = price
        super().__init__("Saldo insuficiente de pontos (XP).")


class OutOfStockError(StoreError):
    def __init__(self) -> None:
        super().__init__("Produto esgotado.")


class ProductValidationError(StoreError):
    pass


class PurchaseNotFoundError(StoreError):
    pass
