"""Test pagination aggregation"""

import pytest

from artist_sync.exceptions import SpotifyAPIError
from artist_sync.spotify.models import PageResult
from artist_sync.sync.aggregator import collect_all, iter_pages


class ScriptedPages:
    """Serves a fixed chain of pages keyed by URL"""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    async def __call__(self, url, params=None):
        self.calls.append((url, params))
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


class TestAggregator:
    """Test collection aggregation over next pointers"""

    @pytest.mark.asyncio
    async def test_single_page(self):
        """A page without next pointer is the whole collection"""
        fetch = ScriptedPages({'u1': PageResult(items=[1, 2, 3], next=None)})

        assert await collect_all(fetch, 'u1') == [1, 2, 3]
        assert len(fetch.calls) == 1

    @pytest.mark.asyncio
    async def test_follows_next_pointers_in_order(self):
        """Items keep server page order and within-page order"""
        fetch = ScriptedPages({
            'u1': PageResult(items=['a', 'b'], next='u2'),
            'u2': PageResult(items=['c'], next='u3'),
            'u3': PageResult(items=['d', 'e'], next=None),
        })

        assert await collect_all(fetch, 'u1', {'limit': '2'}) == ['a', 'b', 'c', 'd', 'e']
        assert [url for url, _ in fetch.calls] == ['u1', 'u2', 'u3']

    @pytest.mark.asyncio
    async def test_params_only_on_first_request(self):
        """Next pointers are requested verbatim"""
        fetch = ScriptedPages({
            'u1': PageResult(items=[1], next='u2?offset=1&limit=1'),
            'u2?offset=1&limit=1': PageResult(items=[2]),
        })

        await collect_all(fetch, 'u1', {'limit': '1'})

        assert fetch.calls == [('u1', {'limit': '1'}), ('u2?offset=1&limit=1', None)]

    @pytest.mark.asyncio
    async def test_empty_collection(self):
        """An empty first page ends the aggregation"""
        fetch = ScriptedPages({'u1': PageResult(items=[], next=None)})

        assert await collect_all(fetch, 'u1') == []

    @pytest.mark.asyncio
    async def test_empty_string_next_ends_iteration(self):
        """An empty next pointer is treated like a missing one"""
        fetch = ScriptedPages({'u1': PageResult(items=[1], next='')})

        assert await collect_all(fetch, 'u1') == [1]

    @pytest.mark.asyncio
    async def test_no_deduplication(self):
        """Duplicate and null items are passed through untouched"""
        fetch = ScriptedPages({
            'u1': PageResult(items=[1, None], next='u2'),
            'u2': PageResult(items=[1]),
        })

        assert await collect_all(fetch, 'u1') == [1, None, 1]

    @pytest.mark.asyncio
    async def test_failing_page_fails_whole_collection(self):
        """No partial list is returned when a later page fails"""
        fetch = ScriptedPages({
            'u1': PageResult(items=[1], next='u2'),
            'u2': SpotifyAPIError("API request failed with status 500: boom", status=500),
        })

        with pytest.raises(SpotifyAPIError) as exc_info:
            await collect_all(fetch, 'u1')

        assert exc_info.value.status == 500

    @pytest.mark.asyncio
    async def test_iter_pages_is_lazy(self):
        """Pages are only requested as the iteration advances"""
        fetch = ScriptedPages({
            'u1': PageResult(items=[1], next='u2'),
            'u2': PageResult(items=[2]),
        })

        pages = iter_pages(fetch, 'u1')
        first = await pages.__anext__()

        assert first.items == [1]
        assert len(fetch.calls) == 1
        await pages.aclose()
