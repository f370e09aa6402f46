"""Generate mock values from a resolved :data:`~apisynth.models.Schema`.

The generator dispatches on the schema variant.  Strings get a value from
their ``format`` when it is a known one, then from keyword heuristics on
the field's title or name (``email``, ``city``, ``username`` ...), and fall
back to lorem text sized to ``maxLength``.  Numbers are drawn uniformly from
``[minimum, maximum]``, each bound defaulting to -1000 and 1000.

Example::

    schema = ObjectSchema(properties={"email": StringSchema(format="email")})
    generate_from_schema(schema)
    # {'email': 'kimberly21@example.org'}
"""

from __future__ import annotations

import copy
import logging
import math
import warnings
from typing import Any, Optional

from faker import Faker

from apisynth.exceptions import GenerationFallback
from apisynth.mock.providers import FORMAT_PROVIDERS, NAME_PROVIDERS, lorem, make_faker
from apisynth.mock.rules import find_matching_rule, find_template
from apisynth.models import (
    ArraySchema,
    BooleanSchema,
    MockDataOptions,
    NullSchema,
    NumberSchema,
    ObjectSchema,
    RefSchema,
    Schema,
    StringSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_MINIMUM = -1000
DEFAULT_MAXIMUM = 1000
DEFAULT_MIN_ITEMS = 1
DEFAULT_MAX_ITEMS = 5


class SchemaGenerator:
    """Schema-directed mock data generator.

    Args:
        options: Generation options.  A fresh Faker is built from them on
            every :meth:`generate` call.
    """

    def __init__(self, options: Optional[MockDataOptions] = None) -> None:
        self.options = options or MockDataOptions()

    def generate(self, schema: Optional[Schema]) -> Any:
        """Return a JSON-compatible value conforming to *schema*."""
        if schema is None:
            return None
        return self._generate(schema, make_faker(self.options))

    def _generate(self, schema: Schema, fake: Faker) -> Any:
        if self.options.use_examples and schema.has_example:
            return copy.deepcopy(schema.example)
        if schema.enum:
            return copy.deepcopy(fake.random.choice(schema.enum))

        match schema:
            case ObjectSchema():
                return self._object(schema, fake)
            case ArraySchema():
                return self._array(schema, fake)
            case StringSchema():
                return self._string(schema, fake)
            case NumberSchema():
                return self._number(schema, fake)
            case BooleanSchema():
                return fake.pybool()
            case NullSchema():
                return None
            case RefSchema():
                _fallback(f"unresolved $ref '{schema.pointer}' generated as an empty object")
                return {}
            case _:
                _fallback(f"unsupported schema {type(schema).__name__}")
                return None

    def _object(self, schema: ObjectSchema, fake: Faker) -> dict[str, Any]:
        found, template = find_template(schema.title, self.options)
        if found:
            return template

        result: dict[str, Any] = {}
        for prop_name, prop_schema in schema.properties.items():
            matched, value = find_matching_rule(prop_name, prop_schema, self.options.rules)
            result[prop_name] = value if matched else self._generate(prop_schema, fake)
        return result

    def _array(self, schema: ArraySchema, fake: Faker) -> list[Any]:
        if schema.items is None:
            return []
        low = schema.min_items if schema.min_items is not None else DEFAULT_MIN_ITEMS
        high = schema.max_items if schema.max_items is not None else max(DEFAULT_MAX_ITEMS, low)
        count = fake.random_int(min=low, max=max(low, high))
        return [self._generate(schema.items, fake) for _ in range(count)]

    def _string(self, schema: StringSchema, fake: Faker) -> str:
        provider = FORMAT_PROVIDERS.get(schema.format or "")
        if provider is None:
            field = (schema.title or schema.name or "").lower()
            provider = next(
                (gen for keys, gen in NAME_PROVIDERS if any(k in field for k in keys)),
                None,
            )

        if provider is not None:
            value = provider(fake)
        else:
            value = lorem(fake, schema.max_length if schema.max_length is not None else 30)

        if schema.min_length is not None:
            while len(value) < schema.min_length:
                value = f"{value} {fake.word()}"
        if schema.max_length is not None:
            value = value[: schema.max_length]
        return value

    def _number(self, schema: NumberSchema, fake: Faker) -> int | float:
        low = schema.minimum if schema.minimum is not None else DEFAULT_MINIMUM
        high = schema.maximum if schema.maximum is not None else DEFAULT_MAXIMUM
        if low > high:
            low, high = high, low

        if schema.type == "integer":
            low_int, high_int = math.ceil(low), math.floor(high)
            if low_int > high_int:
                return int(low_int)
            return fake.random_int(min=low_int, max=high_int)

        value = round(fake.random.uniform(low, high), 2)
        return float(min(max(value, low), high))


def generate_from_schema(schema: Optional[Schema], options: Optional[MockDataOptions] = None) -> Any:
    """Functional form of :meth:`SchemaGenerator.generate`."""
    return SchemaGenerator(options).generate(schema)


def _fallback(message: str) -> None:
    logger.debug(message)
    warnings.warn(message, GenerationFallback, stacklevel=3)
