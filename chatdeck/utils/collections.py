from typing import Dict, List, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


def dedupe_by(items: List[T], key) -> Dict[str, T]:
    """Colapsa por clave: conserva la primera posición y el último valor."""
    out: Dict[str, T] = {}
    for item in items:
        out[key(item)] = item
    return out


def model_dump_list(list: List[BaseModel]) -> list[dict]:
    return [item.model_dump(mode="json") for item in list]
