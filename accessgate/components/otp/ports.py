from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    def now_utc(self) -> datetime: ...


class CodeGeneratorPort(Protocol):
    """Produces a zero-padded numeric code of the given length."""

    def generate(self, digits: int) -> str: ...
