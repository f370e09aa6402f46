"""Sequential test runner.

:class:`TestRunner` turns each :class:`~apisynth.models.TestCase` into an
:class:`~apisynth.models.HttpRequest`, sends it through an
:class:`httpx.Client` (a live server, or a
:class:`~apisynth.execution.mock_registry.MockRegistry` transport), converts
the reply into an :class:`~apisynth.models.ApiResponse` and evaluates the
case's assertions against it.

Cases run strictly one after another.  A request that times out or fails at
the transport level fails its case and is not retried.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Iterable, Optional
from urllib.parse import quote

import httpx

from apisynth.exceptions import ExecutionError
from apisynth.execution.assertions import evaluate_all
from apisynth.models import ApiResponse, ApiTestResult, HttpRequest, TestCase

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


class TestRunner:
    """Run test cases against an HTTP target.

    Must be used as a context manager so that the underlying
    :class:`httpx.Client` is opened and closed.

    Args:
        base_url: Prefix for test cases whose ``endpoint`` is a bare path.
        timeout: Per-request timeout in seconds.
        settle_delay: Seconds to wait after each case.
        headers: Headers sent with every request; case headers override them.
        verify_ssl: Verify TLS certificates.
        transport: Optional httpx transport, e.g. a mock registry's.
        substitute_path_params: Fill ``{name}`` placeholders from the case's
            ``path_params``.  Mock registries key on the declared template, so
            mocked runs leave placeholders in place.

    Example::

        with TestRunner(base_url="https://api.example.com") as runner:
            results = runner.run(suite.test_cases)
    """

    __test__ = False

    def __init__(
        self,
        base_url: str = "",
        timeout: float = 10.0,
        settle_delay: float = 0.0,
        headers: Optional[dict[str, str]] = None,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
        substitute_path_params: bool = True,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.settle_delay = settle_delay
        self.headers = dict(headers or {})
        self.verify_ssl = verify_ssl
        self.transport = transport
        self.substitute_path_params = substitute_path_params
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> TestRunner:
        self._client = httpx.Client(
            timeout=self.timeout,
            verify=self.verify_ssl,
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def run(self, cases: Iterable[TestCase]) -> list[ApiTestResult]:
        """Run *cases* in order and return one result per case.

        Raises:
            ExecutionError: If a case addresses a bare path and no base URL
                is configured, or the runner was not entered.
        """
        cases = list(cases)
        if not self.base_url:
            relative = [c.id for c in cases if not _is_absolute(c.endpoint)]
            if relative:
                raise ExecutionError(
                    f"no base URL configured for relative endpoints: {', '.join(relative[:3])}"
                )

        results = []
        for index, case in enumerate(cases):
            results.append(self.run_case(case))
            if self.settle_delay > 0 and index < len(cases) - 1:
                time.sleep(self.settle_delay)
        return results

    def run_case(self, case: TestCase) -> ApiTestResult:
        request = self.build_request(case)
        start = time.perf_counter()

        try:
            response = self.send(request)
        except httpx.TimeoutException as exc:
            return self._failed(case, start, f"request timed out after {self.timeout}s: {exc}")
        except httpx.RequestError as exc:
            return self._failed(case, start, f"request failed: {exc}")

        failed = [r.message for r in evaluate_all(case.assertions, response) if not r.passed]
        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(
            "%s %s -> %d (%d failed assertions)",
            request.method.value, request.url, response.status, len(failed),
        )
        return ApiTestResult(
            test_case_id=case.id,
            passed=not failed,
            response=response,
            failed_assertions=failed,
            duration_ms=round(duration_ms, 2),
        )

    def build_request(self, case: TestCase) -> HttpRequest:
        """Build the request for *case*: URL, merged headers, query and body."""
        url = case.endpoint
        if self.substitute_path_params and case.path_params:
            url = _PLACEHOLDER.sub(
                lambda m: quote(str(case.path_params[m.group(1)]), safe="")
                if m.group(1) in case.path_params
                else m.group(0),
                url,
            )
        if not _is_absolute(url):
            url = f"{self.base_url}/{url.lstrip('/')}"

        return HttpRequest(
            method=case.method,
            url=url,
            headers={**self.headers, **case.headers},
            query=dict(case.query),
            body=case.body,
            timeout=self.timeout,
        )

    def send(self, request: HttpRequest) -> ApiResponse:
        """Send *request* and convert the reply.

        Raises:
            ExecutionError: If the runner is not open.
            httpx.RequestError: On transport failures, including timeouts.
        """
        if self._client is None:
            raise ExecutionError("TestRunner must be used as a context manager")

        kwargs: dict[str, Any] = {
            "params": request.query or None,
            "headers": request.headers,
            "timeout": request.timeout,
        }
        if request.body is not None:
            content_type = next(
                (v for k, v in request.headers.items() if k.lower() == "content-type"), ""
            )
            if isinstance(request.body, str):
                kwargs["content"] = request.body
            elif "form" in content_type and isinstance(request.body, dict):
                kwargs["data"] = request.body
            else:
                kwargs["json"] = request.body

        reply = self._client.request(request.method.value, request.url, **kwargs)
        return to_api_response(reply)

    def _failed(self, case: TestCase, start: float, message: str) -> ApiTestResult:
        logger.warning("Test case %s failed: %s", case.id, message)
        return ApiTestResult(
            test_case_id=case.id,
            passed=False,
            failed_assertions=[message],
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )


def to_api_response(reply: httpx.Response) -> ApiResponse:
    """Convert an httpx reply: JSON body when decodable, else text, ``None`` when empty."""
    body: Any = None
    if reply.content:
        try:
            body = reply.json()
        except ValueError:
            body = reply.text
    return ApiResponse(
        status=reply.status_code,
        status_text=reply.reason_phrase,
        headers=dict(reply.headers),
        body=body,
    )


def _is_absolute(url: str) -> bool:
    return url.startswith(("http://", "https://"))
