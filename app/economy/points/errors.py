class PointsLedgerError(Exception):
    pass


class InvalidPointsAmountError(PointsLedgerError):
    pass


class InsufficientPointsError(PointsLedgerError):
    def __init__(self, *, balance: int, amount: int) -> None:
        self.balance = balance
        self.amount = amount
        super().__init__(f"balance {balance} cannot absorb {amount}")
