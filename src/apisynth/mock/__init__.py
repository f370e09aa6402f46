"""Mock data synthesis from schemas or from examples.

Sub-modules:

* :mod:`~apisynth.mock.schema_generator` -- values conforming to a resolved
  schema.
* :mod:`~apisynth.mock.example_generator` -- values resembling a sample.
* :mod:`~apisynth.mock.rules` -- field rules and custom templates shared by
  both generators.
* :mod:`~apisynth.mock.providers` -- Faker construction and value providers.
"""

from apisynth.mock.example_generator import ExampleGenerator, generate_from_example
from apisynth.mock.rules import find_matching_rule, find_template
from apisynth.mock.schema_generator import SchemaGenerator, generate_from_schema

__all__ = [
    "ExampleGenerator",
    "SchemaGenerator",
    "find_matching_rule",
    "find_template",
    "generate_from_example",
    "generate_from_schema",
]
