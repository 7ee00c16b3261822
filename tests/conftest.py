import pytest

from scriptforge import OutputStream, get_ambient_context


@pytest.fixture(autouse=True)
def no_redirection_left_behind():
    """Fail any test that leaves a sink override installed."""
    yield
    context = get_ambient_context()
    for stream in OutputStream:
        assert context.depth(stream) == 0, f"{stream.value} override leaked"
