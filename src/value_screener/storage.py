"""
JSON array storage for symbol lists and fundamentals records

Every write replaces the target file atomically (temp file in the same
directory + ``os.replace``) so readers never see a half-written array.
The store has no internal locking: each file has exactly one writer at a
time, which the pipeline guarantees by running a single ResultWriter.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Type, TypeVar, Union

from pydantic import BaseModel

from src.utils.core.logger import get_logger

logger = get_logger(__name__, utility="value_screener")

ModelT = TypeVar("ModelT", bound=BaseModel)


class RecordStoreError(Exception):
    """Existing store content is not a JSON array"""

    def __init__(self, message: str, path: Path):
        self.path = path
        super().__init__(f"{message}: {path}")


def _remove_temp_file(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temp file {path}: {e}")


def _to_plain(item: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(item, BaseModel):
        return item.model_dump(by_alias=True)
    return dict(item)


class JsonArrayStore:
    """A JSON file holding one top-level array"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> List[Dict[str, Any]]:
        """
        Read the whole array

        Returns:
            The stored items; an empty list when the file does not exist

        Raises:
            RecordStoreError: Content is not valid JSON or not an array
            OSError: File exists but cannot be read
        """
        if not self.path.exists():
            return []

        text = self.path.read_text(encoding="utf-8")
        if not text.strip():
            return []

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise RecordStoreError(f"Could not parse existing JSON ({e.msg})", self.path) from e

        if not isinstance(data, list):
            raise RecordStoreError(f"Expected a JSON array, found {type(data).__name__}", self.path)
        return data

    def read_models(self, model_cls: Type[ModelT]) -> List[ModelT]:
        """Read the array and validate every item into ``model_cls``"""
        return [model_cls.model_validate(item) for item in self.read()]

    def write(self, items: Iterable[Union[BaseModel, Dict[str, Any]]]) -> int:
        """
        Replace the file content with ``items``

        Returns:
            Number of items written

        Raises:
            ValueError: An item holds NaN or an infinite float; the file is left untouched
        """
        payload = [_to_plain(item) for item in items]
        text = json.dumps(payload, indent=2, ensure_ascii=False, allow_nan=False)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            _remove_temp_file(tmp_name)
            raise

        return len(payload)

    def append(self, item: Union[BaseModel, Dict[str, Any]]) -> int:
        """
        Read the current array, append one item and rewrite the file

        Returns:
            New number of items in the file
        """
        items: List[Union[BaseModel, Dict[str, Any]]] = list(self.read())
        items.append(item)
        return self.write(items)

    def reset(self) -> None:
        """Start over with an empty array"""
        self.write([])
        logger.debug(f"Reset store {self.path}")
