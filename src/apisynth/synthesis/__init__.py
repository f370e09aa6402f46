"""Test case synthesis from parsed documents."""

from apisynth.synthesis.testcases import synthesize_for_endpoint, synthesize_test_cases

__all__ = ["synthesize_for_endpoint", "synthesize_test_cases"]
