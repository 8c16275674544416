"""Parsing of test descriptions into external test ids."""

import re
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field


TEST_ID_PATTERN = re.compile(r"\[([A-Za-z][A-Za-z0-9_-]*)\]")


def extract_test_ids(text: str) -> Tuple[str, ...]:
    """
    Extract bracketed test ids from ``text``.

    Duplicates collapse to their first occurrence.

    >>> extract_test_ids("[C2345][C3344] demo [C2345]")
    ('C2345', 'C3344')
    """
    seen = []
    for match in TEST_ID_PATTERN.finditer(text):
        test_id = match.group(1)
        if test_id not in seen:
            seen.append(test_id)
    return tuple(seen)


class TestDescription(BaseModel):
    """A test description and the ids it references."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Free-form description")
    test_ids: Tuple[str, ...] = Field(default_factory=tuple, description="Extracted ids")

    @classmethod
    def parse(cls, text: str) -> "TestDescription":
        return cls(text=text, test_ids=extract_test_ids(text))

    @property
    def is_tracked(self) -> bool:
        return bool(self.test_ids)

    def __str__(self) -> str:
        return self.text
