"""Error taxonomy for the tombola game core.

Only DeckIntegrityError is fatal; everything else is reported once to the
connection that caused it and leaves the game state untouched.
"""


class TombolaError(Exception):
    """Base class for all game errors."""


class DeckIntegrityError(TombolaError):
    def __init__(self, message: str, card_id: int = None, series_no: int = None):
        self.card_id = card_id
        self.series_no = series_no
        where = []
        if series_no is not None:
            where.append(f'series {series_no}')
        if card_id is not None:
            where.append(f'card {card_id}')
        prefix = f"{', '.join(where)}: " if where else ''
        super().__init__(prefix + message)


class AssignmentCollisionError(TombolaError):
    def __init__(self, card_ids):
        self.card_ids = sorted(set(card_ids))
        super().__init__(f'Cards not available: {self.card_ids}')


class GameInProgressError(TombolaError):
    pass


class GameNotStartedError(TombolaError):
    pass


class UnauthorizedActionError(TombolaError):
    pass


class AlreadyClaimedError(TombolaError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f'{category} already claimed')


class InvalidClaimError(TombolaError):
    def __init__(self, category: str):
        self.category = category
        super().__init__(f'{category} claim is not valid')


class DrawExhaustedError(TombolaError):
    pass


class UnknownCategoryError(TombolaError):
    def __init__(self, category):
        self.category = category
        super().__init__(f'Unknown prize category: {category!r}')


class PayloadError(TombolaError):
    pass
