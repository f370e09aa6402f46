"""Generate mock values that resemble a sample value.

Where :mod:`~apisynth.mock.schema_generator` starts from a declared shape,
this generator starts from an example and produces a value of the same
shape with fresh content: objects keep their keys, arrays keep roughly
their length, strings keep their kind (email, URL, date, UUID, embedded
JSON, prose of similar length), numbers stay within 20% and keep their
type, and booleans keep their value 70% of the time.
"""

from __future__ import annotations

import json
import logging
import math
import re
import warnings
from typing import Any, Optional

from faker import Faker

from apisynth.exceptions import GenerationFallback
from apisynth.mock.providers import lorem, make_faker, recent_date, recent_datetime
from apisynth.mock.rules import find_matching_rule
from apisynth.models import MockDataOptions

logger = logging.getLogger(__name__)

_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_UUID = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

BOOLEAN_KEEP_PROBABILITY = 0.7
NUMBER_SPREAD = 0.2
ARRAY_SPREAD = 2


class ExampleGenerator:
    """Example-directed mock data generator."""

    def __init__(self, options: Optional[MockDataOptions] = None) -> None:
        self.options = options or MockDataOptions()

    def generate(self, example: Any) -> Any:
        """Return a value shaped like *example*."""
        return self._generate(example, make_faker(self.options))

    def _generate(self, example: Any, fake: Faker) -> Any:
        if example is None:
            return None
        if isinstance(example, bool):
            return example if fake.random.random() < BOOLEAN_KEEP_PROBABILITY else not example
        if isinstance(example, int):
            return self._integer(example, fake)
        if isinstance(example, float):
            return self._float(example, fake)
        if isinstance(example, str):
            return self._string(example, fake)
        if isinstance(example, list):
            return self._list(example, fake)
        if isinstance(example, dict):
            return self._dict(example, fake)

        message = f"no example strategy for {type(example).__name__}; value returned unchanged"
        logger.debug(message)
        warnings.warn(message, GenerationFallback, stacklevel=2)
        return example

    def _dict(self, example: dict[str, Any], fake: Faker) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in example.items():
            matched, generated = find_matching_rule(key, value, self.options.rules)
            result[key] = generated if matched else self._generate(value, fake)
        return result

    def _list(self, example: list[Any], fake: Faker) -> list[Any]:
        if not example:
            return []
        size = len(example)
        length = fake.random_int(min=max(1, size - ARRAY_SPREAD), max=size + ARRAY_SPREAD)
        # Cycle through the sample items as templates.
        return [self._generate(example[i % size], fake) for i in range(length)]

    def _integer(self, example: int, fake: Faker) -> int:
        low, high = sorted((example * (1 - NUMBER_SPREAD), example * (1 + NUMBER_SPREAD)))
        return fake.random_int(min=math.floor(low), max=math.ceil(high))

    def _float(self, example: float, fake: Faker) -> float:
        low, high = sorted((example * (1 - NUMBER_SPREAD), example * (1 + NUMBER_SPREAD)))
        value = fake.random.uniform(low, high)
        # Keep about three significant digits, never fewer than two decimals.
        digits = max(2, 2 - math.floor(math.log10(abs(example)))) if example else 2
        rounded = round(value, digits)
        return rounded if low <= rounded <= high else value

    def _string(self, example: str, fake: Faker) -> str:
        if "@" in example and "." in example:
            return fake.email()
        if example.startswith("http") or "www." in example:
            return fake.url()
        if _DATETIME.match(example):
            return recent_datetime(fake)
        if _DATE.match(example):
            return recent_date(fake)
        if _UUID.match(example):
            return fake.uuid4()
        if (example.startswith("{") and example.endswith("}")) or (
            example.startswith("[") and example.endswith("]")
        ):
            try:
                parsed = json.loads(example)
            except ValueError:
                pass
            else:
                return json.dumps(self._generate(parsed, fake))
        return lorem(fake, len(example))


def generate_from_example(example: Any, options: Optional[MockDataOptions] = None) -> Any:
    """Functional form of :meth:`ExampleGenerator.generate`."""
    return ExampleGenerator(options).generate(example)
