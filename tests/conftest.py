"""Shared fixtures for depgraph tests.

Feeds are in-memory sources describing small package universes:

- ``diamond_feed``: Foo -> Bar, Baz; Bar -> Qux [1.0.0, ); Baz -> Qux [2.0.0, ).
- ``conflict_feed``: like the diamond, but Bar caps Qux below 2.0.0.
"""

from __future__ import annotations

import pytest

from depgraph.core.frameworks import Framework
from depgraph.sources.memory import InMemorySource


@pytest.fixture
def net472() -> Framework:
    return Framework.parse_folder("net472")


@pytest.fixture
def diamond_feed() -> InMemorySource:
    """Foo 1.0.0 whose two dependencies disagree on the lowest Qux."""
    feed = InMemorySource("diamond")
    feed.add("Foo", "1.0.0", {"Bar": "[1.0.0, )", "Baz": "[1.0.0, )"}, lib={"net45": ["Foo.dll"]})
    feed.add("Bar", "1.0.0", {"Qux": "[1.0.0, )"}, lib={"net45": ["Bar.dll"]})
    feed.add("Baz", "1.0.0", {"Qux": "[2.0.0, )"}, lib={"netstandard2.0": ["Baz.dll"]})
    feed.add("Qux", "1.0.0", lib={"net45": ["Qux.dll"]})
    feed.add("Qux", "2.0.0", lib={"net45": ["Qux.dll", "Qux.xml"]})
    return feed


@pytest.fixture
def conflict_feed() -> InMemorySource:
    """Foo 1.0.0 whose dependencies require disjoint Qux ranges."""
    feed = InMemorySource("conflict")
    feed.add("Foo", "1.0.0", {"Bar": "[1.0.0, )", "Baz": "[1.0.0, )"})
    feed.add("Bar", "1.0.0", {"Qux": "[1.0.0, 2.0.0)"})
    feed.add("Baz", "1.0.0", {"Qux": "[2.0.0, )"})
    feed.add("Qux", "1.0.0")
    feed.add("Qux", "2.0.0")
    return feed
