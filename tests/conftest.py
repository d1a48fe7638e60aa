import inspect
from typing import Any, Callable, List, Sequence, Tuple, Union

import pytest

from floatsearch.service import QueryService

Response = Union[List[dict], Callable[..., Any], BaseException]


class FakeExecutor:
    """
    Warehouse executor scripted by SQL substring. The first matching needle
    wins; unmatched queries return no rows. A response may be a list of rows,
    an exception to raise, or a (possibly async) callable ``(sql, params)``.
    """

    def __init__(self, responses: Sequence[Tuple[str, Response]] = ()):
        self.responses = list(responses)
        self.calls: List[Tuple[str, list]] = []

    def on(self, needle: str, response: Response) -> "FakeExecutor":
        self.responses.append((needle, response))
        return self

    async def execute(self, sql, params):
        self.calls.append((sql, list(params)))
        for needle, response in self.responses:
            if needle in sql:
                if isinstance(response, BaseException):
                    raise response
                if callable(response):
                    out = response(sql, params)
                    if inspect.isawaitable(out):
                        out = await out
                    return out
                return [dict(r) for r in response]
        return []

    def call_for(self, needle: str) -> Tuple[str, list]:
        for sql, params in self.calls:
            if needle in sql:
                return sql, params
        raise AssertionError(f"no query containing {needle!r}; got {[s for s, _ in self.calls]}")


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def service(executor):
    return QueryService(executor, profiles_table="PROFILES", measurements_table="MEASUREMENTS")
