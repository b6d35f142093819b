class MemberError(Exception):
    pass


class MemberLimitExceededError(MemberError):
    def __init__(self, *, current: int, limit: int) -> None:
        self.current = current
        self.limit = limit
        super().__init__(
            f"Limite do plano atingido ({current}/{limit} membros ativos). "
            "Faça upgrade para adicionar mais."
        )


class MemberNotFoundError(MemberError):
    pass


class MemberEmailTakenError(MemberError):
    pass


class MemberValidationError(MemberError):
    pass
