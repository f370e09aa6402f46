"""Test execution -- assertion evaluation, the mock registry and the runner.

Sub-modules:

* :mod:`~apisynth.execution.assertions` -- evaluate assertions against a
  response.
* :mod:`~apisynth.execution.mock_registry` -- canned responses served
  through an httpx transport.
* :mod:`~apisynth.execution.runner` -- send test cases sequentially and
  collect results.
"""

from apisynth.execution.assertions import evaluate, evaluate_all
from apisynth.execution.mock_registry import MockDefinition, MockRegistry
from apisynth.execution.runner import TestRunner

__all__ = [
    "MockDefinition",
    "MockRegistry",
    "TestRunner",
    "evaluate",
    "evaluate_all",
]
