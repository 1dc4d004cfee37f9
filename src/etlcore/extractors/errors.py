# src/etlcore/extractors/errors.py
from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Closed set of extraction failures.
    Callers branch on `ExtractorError.kind` instead of on exception subclasses.
    """
    NETWORK = "network"
    HTTP = "http"
    PARSE = "parse"
    MISSING_FIELD = "missing_field"
    DESERIALIZATION = "deserialization"


class ExtractorError(Exception):
    """
    Raised by every extractor operation that fails.
    The underlying exception, if any, is chained as __cause__.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        url: Optional[str] = None,
        status: Optional[int] = None,
        field: Optional[str] = None,
        expected: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.url = url
        self.status = status
        self.field = field
        self.expected = expected

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"

    def __repr__(self) -> str:
        return f"ExtractorError(kind={self.kind.value!r}, message={self.message!r})"

    @classmethod
    def network(cls, url: str, cause: BaseException) -> "ExtractorError":
        reason = str(cause) or type(cause).__name__
        return cls(ErrorKind.NETWORK, f"request to {url} failed: {reason}", url=url)

    @classmethod
    def http(cls, url: str, status: int) -> "ExtractorError":
        return cls(ErrorKind.HTTP, f"{url} returned status {status}", url=url, status=status)

    @classmethod
    def parse(cls, url: str, reason: str) -> "ExtractorError":
        return cls(ErrorKind.PARSE, f"could not parse response from {url}: {reason}", url=url)

    @classmethod
    def missing_field(cls, url: str, field: str) -> "ExtractorError":
        return cls(
            ErrorKind.MISSING_FIELD,
            f"field {field!r} not found in response from {url}",
            url=url,
            field=field,
        )

    @classmethod
    def deserialization(
        cls,
        url: str,
        expected: str,
        reason: str,
        field: Optional[str] = None,
    ) -> "ExtractorError":
        subject = f"field {field!r}" if field else "document"
        return cls(
            ErrorKind.DESERIALIZATION,
            f"could not decode {subject} from {url} as {expected}: {reason}",
            url=url,
            field=field,
            expected=expected,
        )
