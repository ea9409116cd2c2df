import pytest

from statebind import set_resolver, use_runtime


@pytest.fixture(autouse=True)
def runtime():
    """Every test gets a fresh runtime and no default resolver."""
    with use_runtime() as rt:
        yield rt
    set_resolver(None)
