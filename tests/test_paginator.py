"""Tests for the paginator."""

import pytest

from openidea_search.application.search.paginator import paginate
from openidea_search.core.exceptions import InvalidParameterError
from openidea_search.domain.entities.resource import RankedResult

from conftest import make_result


@pytest.fixture
def ranked():
    return [
        RankedResult.from_result(make_result("arxiv", f"Result {i}", id=str(i)), score=1.0 - i / 100)
        for i in range(7)
    ]


class TestPaginate:
    def test_first_page(self, ranked):
        page = paginate(ranked, 1, 3)
        assert [r.id for r in page.items] == ["0", "1", "2"]
        assert page.total == 7
        assert page.has_more is True

    def test_last_partial_page(self, ranked):
        page = paginate(ranked, 3, 3)
        assert [r.id for r in page.items] == ["6"]
        assert page.has_more is False

    def test_exact_fit_has_no_more(self, ranked):
        page = paginate(ranked[:6], 2, 3)
        assert len(page.items) == 3
        assert page.has_more is False

    def test_page_past_end(self, ranked):
        page = paginate(ranked, 10, 3)
        assert page.items == ()
        assert page.total == 7
        assert page.has_more is False

    def test_empty_list(self):
        page = paginate([], 1, 30)
        assert page.items == ()
        assert page.total == 0
        assert page.has_more is False

    def test_page_size_clamped(self, ranked):
        page = paginate(ranked, 1, 1000)
        assert page.page_size == 100
        assert len(page.items) == 7

    def test_pages_do_not_overlap(self, ranked):
        seen = []
        for number in range(1, 4):
            seen.extend(r.id for r in paginate(ranked, number, 3).items)
        assert seen == [r.id for r in ranked]

    @pytest.mark.parametrize("page, size", [(0, 10), (-1, 10), (1, 0), (True, 10), (1, 2.5)])
    def test_invalid_arguments(self, ranked, page, size):
        with pytest.raises(InvalidParameterError):
            paginate(ranked, page, size)
