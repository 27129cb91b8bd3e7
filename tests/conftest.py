# tests/conftest.py
from typing import List

import pytest

from autoshuffle.shuffle.models import Song
from fakes import FakeSongSource, song


@pytest.fixture
def library() -> List[Song]:
    return [
        song("a/1.mp3", artist="Alpha", album="First", date="2001"),
        song("a/2.mp3", artist="Alpha", album="First", date="2001"),
        song("a/3.mp3", artist="Alpha", album="Second", date="2004"),
        song("b/1.mp3", artist="Beta Band", album="Hello", date="1999"),
        song("c/1.mp3", artist="Gamma", album="Hello", date="2010"),
        song("loose.mp3"),
    ]


@pytest.fixture
def source(library) -> FakeSongSource:
    return FakeSongSource(library)
