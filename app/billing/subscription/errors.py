class SubscriptionError(Exception):
    pass


class ClubAccessDeniedError(SubscriptionError):
    def __init__(self, club_name: str) -> None:
        self.club_name = club_name
        super().__init__(f"Ação Bloqueada: O clube {club_name} está com assinatura vencida.")


class ClubNotFoundError(SubscriptionError):
    pass


class SubscriptionUpdateValidationError(SubscriptionError):
    pass
