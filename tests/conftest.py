"""Pytest configuration and fixtures for Quill tests."""

import pytest

from quill import DictLoader, Environment


@pytest.fixture
def env():
    """Create a Quill Environment without a loader."""
    return Environment()


@pytest.fixture
def templates():
    """Mutable template mapping backing ``env_with_loader``."""
    return {
        "base.lt": (
            "<html>"
            "<head><%!block head%><title>Base</title><%!endblock%></head>"
            "<body><%!block body%>base body<%!endblock%></body>"
            "</html>"
        ),
        "child.lt": "<%!extends base.lt%><%!block body%>Hello World<%!endblock%>",
        "partial.lt": "<p>Partial content</p>",
        "page.lt": "before <%!include partial.lt%> after",
    }


@pytest.fixture
def env_with_loader(templates):
    """Create a Quill Environment with DictLoader and test templates."""
    return Environment(loader=DictLoader(templates))


@pytest.fixture
def debug_env(templates):
    """Environment with line maps enabled."""
    return Environment(loader=DictLoader(templates), debug=True)

