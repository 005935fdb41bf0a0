"""Inbound Socket.IO payloads.

One pydantic model per event kind; anything that does not fit is rejected
before it reaches the coordinator. Keys follow the browser clients
(``sessionId``, ``type``) and also accept ``sessionKey`` / ``category``.
"""
from decimal import Decimal
from typing import Any, List, Literal, Optional, Type, TypeVar, Union

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from tombola.errors import PayloadError
from tombola.models import CARDS_PER_SERIES, NUMBERS, SELECTION_SERIE, SERIES_COUNT

Category = Literal['ambo', 'terno', 'quaterna', 'cinquina', 'tombola']

_session_alias = AliasChoices('sessionKey', 'sessionId', 'session_key')
_category_alias = AliasChoices('category', 'type')


class Payload(BaseModel):
    model_config = {'populate_by_name': True, 'extra': 'ignore'}


class Reconnect(Payload):
    session_key: str = Field(min_length=1, max_length=128, validation_alias=_session_alias)
    nickname: Optional[str] = Field(default=None, max_length=30)


class PlayerJoin(Payload):
    nickname: str = Field(min_length=1, max_length=30)
    selection_type: Literal['serie', 'cards'] = Field(
        validation_alias=AliasChoices('selectionType', 'selection_type')
    )
    selection: Union[int, List[int]]
    session_key: Optional[str] = Field(default=None, max_length=128, validation_alias=_session_alias)

    @field_validator('nickname')
    @classmethod
    def strip_nickname(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError('nickname must not be blank')
        return value

    @model_validator(mode='after')
    def check_selection(self) -> 'PlayerJoin':
        if self.selection_type == SELECTION_SERIE:
            if not isinstance(self.selection, int):
                raise ValueError('a serie selection is a single series number')
            if not 1 <= self.selection <= SERIES_COUNT:
                raise ValueError(f'series must be between 1 and {SERIES_COUNT}')
        else:
            if not isinstance(self.selection, list):
                raise ValueError('a cards selection is a list of card ids')
            if not 1 <= len(self.selection) <= CARDS_PER_SERIES:
                raise ValueError(f'select between 1 and {CARDS_PER_SERIES} cards')
            if any(not 1 <= card_id <= NUMBERS for card_id in self.selection):
                raise ValueError(f'card ids must be between 1 and {NUMBERS}')
        return self


class SetCost(Payload):
    cost: Decimal = Field(ge=0, le=10000)


class AdjustPrize(Payload):
    category: Category = Field(validation_alias=_category_alias)
    amount: Decimal = Field(ge=-100000, le=100000)


class DeclareWin(Payload):
    category: Category = Field(validation_alias=_category_alias)


class ValidateWin(Payload):
    nickname: str = Field(min_length=1, max_length=30)
    category: Category = Field(validation_alias=_category_alias)
    valid: bool


P = TypeVar('P', bound=Payload)


def parse_payload(model: Type[P], data: Any) -> P:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PayloadError(f'{model.__name__} payload must be an object')
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        problems = '; '.join(
            f"{'.'.join(str(p) for p in err['loc']) or 'payload'}: {err['msg']}"
            for err in exc.errors()
        )
        raise PayloadError(f'Invalid {model.__name__} payload: {problems}') from exc
