from __future__ import annotations
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Union

from chatdeck.config import STORE_PATH
from chatdeck.store_protocol import KeyValueStore

logger = logging.getLogger(__name__)


class JsonFileStore(KeyValueStore):
    """
    Un único objeto JSON en disco {clave: valor}. Sobrevive reinicios del proceso.
    Cada escritura reemplaza el archivo de forma atómica (tmp + os.replace).
    """
    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path) if path is not None else STORE_PATH
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as ex:
            logger.error("Store file %s is unreadable, starting empty: %s", self.path, ex)
            return {}
        if not isinstance(raw, dict):
            logger.error("Store file %s does not hold an object, starting empty", self.path)
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    # ---------- Store API ----------
    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()
