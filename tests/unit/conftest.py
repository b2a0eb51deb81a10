"""Shared test fixtures."""

from collections.abc import Callable

import pytest

from mdview.document import SoupDocument
from tests.unit.fakes import page


@pytest.fixture
def make_document() -> Callable[[str], SoupDocument]:
    """Build a SoupDocument whose <main> holds ``body``."""

    def _make(body: str) -> SoupDocument:
        return SoupDocument(page(body))

    return _make


@pytest.fixture
def cat_document(make_document) -> SoupDocument:
    return make_document("<p>The cat sat on the mat. CAT.</p>")
