# src/etlcore/extractors/base.py
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from etlcore.extractors.errors import ExtractorError

T = TypeVar("T")


class ExtractFormat(str, Enum):
    JSON = "json"
    TEXT = "text"
    BYTES = "bytes"


@dataclass(frozen=True)
class Checkpoint:
    """Opaque marker for incremental extraction (cursor, timestamp, etag...)."""
    value: str


@dataclass(frozen=True)
class ExtractorResult(Generic[T]):
    """
    Either an extracted value or the ExtractorError that prevented it.
    Returned by `Extractor.try_extract`, handy with asyncio.gather fan-outs.
    """
    value: Optional[T] = None
    error: Optional[ExtractorError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


class Extractor(ABC):
    """
    Contract for all extractors:
    input: nothing beyond the extractor's own configuration
    output: a value of the caller's target type, or ExtractorError

    Implementations are configured once and never mutated afterwards, so one
    instance may be awaited from many tasks at the same time.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def extract(self, target: Any = Any) -> Any:
        """Pull the configured value from the source and decode it as `target`."""
        raise NotImplementedError

    @abstractmethod
    async def extract_json(self, target: Any = Any) -> Any:
        """Decode the whole source document as `target`."""
        raise NotImplementedError

    @abstractmethod
    async def extract_text(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def extract_bytes(self) -> bytes:
        raise NotImplementedError

    async def try_extract(self, target: Any = Any) -> ExtractorResult[Any]:
        try:
            return ExtractorResult(value=await self.extract(target))
        except ExtractorError as exc:
            return ExtractorResult(error=exc)

    async def extract_as(self, fmt: ExtractFormat, target: Any = Any) -> Any:
        fmt = ExtractFormat(fmt)
        if fmt is ExtractFormat.JSON:
            return await self.extract_json(target)
        if fmt is ExtractFormat.TEXT:
            return await self.extract_text()
        return await self.extract_bytes()

    async def ping(self) -> Optional[int]:
        """
        Raise ExtractorError if the source is unreachable.
        Sources with a status code (HTTP) return it instead of raising on
        error statuses. The default has no status and returns None.
        """
        await self.extract_bytes()
        return None

    def metadata(self) -> Dict[str, Any]:
        return {"source": self.source_name}

    async def close(self) -> None:
        return None

    # incremental extraction
    @property
    def supports_incremental(self) -> bool:
        return False

    def checkpoint(self) -> Optional[Checkpoint]:
        return None

    def set_checkpoint(self, chk: Checkpoint) -> None:
        if not self.supports_incremental:
            raise NotImplementedError(f"{self.source_name} does not support incremental extraction")
