import asyncio
import inspect

import pytest

from flameview.config import Settings
from fv_fakes import BAR_CHART_SOURCE


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Run async test functions without requiring external plugins."""
    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            # Filter funcargs to only include parameters the function expects
            sig = inspect.signature(test_function)
            filtered_args = {k: v for k, v in pyfuncitem.funcargs.items() if k in sig.parameters}
            loop.run_until_complete(test_function(**filtered_args))
        finally:
            loop.close()
            asyncio.set_event_loop(None)
        return True
    return None


def pytest_configure(config):
    """Register markers for pytest."""
    config.addinivalue_line("markers", "asyncio: mark async tests")


@pytest.fixture
def bar_chart_source() -> str:
    return BAR_CHART_SOURCE


@pytest.fixture
def signups_bundle():
    return {"signups": [{"day": "Mon", "count": 3}]}


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, analyze_requirements=False, gemini_api_key="test-key")
