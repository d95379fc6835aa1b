import pytest

from reference_tree import make_tree


# ===========================================================================
# Test fixtures
# ===========================================================================


@pytest.fixture
def tree16():
    """Reference tree with 16 leaves."""
    return make_tree(16)
