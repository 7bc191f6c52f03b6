"""Tests for Connectable."""

import pytest

from reconnector.connectable import Connectable


class GoodConnectable(Connectable):
    def connect(self) -> None:
        pass


class BadConnectable(Connectable):
    pass


def test_good_connectable_instantiation():
    assert isinstance(GoodConnectable(), Connectable)


def test_bad_connectable_instantiation():
    """A subclass without connect() cannot be instantiated."""
    with pytest.raises(TypeError):
        BadConnectable()
