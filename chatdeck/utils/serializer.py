import json
from typing import List

import pydantic
from pydantic import BaseModel, TypeAdapter

from ..errors import PersistenceParseError
from ..models import Message, Session
from .collections import model_dump_list

_messages = TypeAdapter(List[Message])
_sessions = TypeAdapter(List[Session])


def to_json(object: any) -> str:
    # BaseModel y listas de BaseModel usan su propia serialización, el resto va a json plano
    if isinstance(object, BaseModel):
        return object.model_dump_json()
    if isinstance(object, list) and all(isinstance(o, BaseModel) for o in object):
        return json.dumps(model_dump_list(object), ensure_ascii=False)
    return json.dumps(object, ensure_ascii=False)


def messages_from_json(key: str, raw: str) -> List[Message]:
    try:
        return _messages.validate_json(raw)
    except pydantic.ValidationError as ex:
        raise PersistenceParseError(key, f"{ex.error_count()} validation error(s)") from ex


def sessions_from_json(key: str, raw: str) -> List[Session]:
    try:
        return _sessions.validate_json(raw)
    except pydantic.ValidationError as ex:
        raise PersistenceParseError(key, f"{ex.error_count()} validation error(s)") from ex
