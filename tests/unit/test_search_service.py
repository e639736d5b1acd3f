"""Unit tests for the search session facade and pagination."""

import pytest

from paper_search.domain.index_status import IndexStatus, MissingConfigurationError
from paper_search.domain.model import SearchResult
from paper_search.service_layer.search_service import SearchSession, paginate
from tests.support import make_settings


def make_results(count):
    return [SearchResult(id=f"{n}.txt", title=str(n), score=n) for n in range(count)]


@pytest.mark.unit
class TestPaginate:
    """Tests for 1-based result paging."""

    def test_first_page(self):
        page = paginate(make_results(25))
        assert [result.id for result in page.results] == [f"{n}.txt" for n in range(10)]
        assert page.total_pages == 3
        assert page.total_results == 25
        assert page.has_next
        assert not page.has_previous

    def test_last_page_is_partial(self):
        page = paginate(make_results(25), page=3)
        assert len(page.results) == 5
        assert not page.has_next

    def test_page_is_clamped(self):
        assert paginate(make_results(25), page=99).page == 3
        assert paginate(make_results(25), page=0).page == 1

    def test_empty_results_have_one_empty_page(self):
        page = paginate([], page=4)
        assert page.results == ()
        assert page.page == 1
        assert page.total_pages == 1

    def test_custom_page_size(self):
        page = paginate(make_results(7), page=2, page_size=3)
        assert [result.id for result in page.results] == ["3.txt", "4.txt", "5.txt"]

    def test_page_size_must_be_positive(self):
        with pytest.raises(ValueError):
            paginate(make_results(3), page_size=0)


@pytest.mark.unit
class TestSearchSession:
    """Tests for the create -> run -> query -> close lifecycle."""

    @pytest.mark.asyncio
    async def test_end_to_end_against_fake_host(self, fake_host):
        fake_host.add("Mars Soil.txt", "Regolith samples from the red planet.")
        fake_host.add("mars-dust-properties.txt", "Dust grain sizes.")
        fake_host.add("Orbit.txt", "Effects of zero gravity on bone density.")
        client = fake_host.client()
        progress = []

        async with SearchSession(make_settings(), client=client) as session:
            session.subscribe(progress.append)
            assert session.status is IndexStatus.IDLE
            assert await session.run() is IndexStatus.READY

            results = session.search("mars")
            assert [result.id for result in results] == ["Mars Soil.txt", "mars-dust-properties.txt"]

            page = session.search_page('"zero gravity"')
            assert [result.id for result in page.results] == ["Orbit.txt"]
            assert page.results[0].score == 10

        assert [event.done for event in progress] == [1, 2, 3]
        # The session built the store around an injected client and must leave it open
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unconfigured_session_reports_error(self, caplog):
        async with SearchSession(make_settings(manifest_url="", base_url="")) as session:
            assert await session.run() is IndexStatus.ERROR
            assert session.error_message == "Please set MANIFEST_URL and BASE_URL"
            assert session.search("anything") == []
        assert "failed" in caplog.text

    @pytest.mark.asyncio
    async def test_sessions_do_not_share_state(self, fake_host):
        fake_host.add("Mars Soil.txt", "Regolith")
        first = SearchSession(make_settings(), client=fake_host.client())
        second = SearchSession(make_settings(), client=fake_host.client())

        await first.run()

        assert len(first.search("mars")) == 1
        assert second.search("mars") == []
        assert second.status is IndexStatus.IDLE
        assert first.session_id != second.session_id


@pytest.mark.unit
class TestBrowse:
    """Tests for listing the manifest by title."""

    @pytest.fixture
    def library(self, fake_host):
        fake_host.add("zeta_notes.txt", "Nothing to see.")
        fake_host.add("Mars Soil.txt", "Regolith samples from the red planet.")
        fake_host.add("mars-dust.txt", "Authors: R. Roe\nA 2020 survey of dust.")
        fake_host.files["Mars%20Soil.json"] = '{"authors": ["A. Lee", "B. Kim"], "year": 2019}'
        fake_host.manifest.append("Mars Soil.txt")
        return fake_host

    @pytest.mark.asyncio
    async def test_lists_every_paper_sorted_by_title(self, library):
        async with SearchSession(make_settings(), client=library.client()) as session:
            listings = await session.browse()

        assert [(listing.id, listing.title) for listing in listings] == [
            ("mars-dust.txt", "mars dust"),
            ("Mars Soil.txt", "Mars Soil"),
            ("zeta_notes.txt", "zeta notes"),
        ]
        assert (listings[0].authors, listings[0].year) == ("R. Roe", "2020")
        assert (listings[1].authors, listings[1].year) == ("A. Lee, B. Kim", "2019")
        assert (listings[2].authors, listings[2].year) == (None, None)
        # Browsing does not index anything
        assert session.status is IndexStatus.IDLE

    @pytest.mark.asyncio
    async def test_filter_is_case_insensitive_substring(self, library):
        async with SearchSession(make_settings(), client=library.client()) as session:
            listings = await session.browse("SOIL")

        assert [listing.id for listing in listings] == ["Mars Soil.txt"]

    @pytest.mark.asyncio
    async def test_without_metadata_only_the_manifest_is_fetched(self, library):
        async with SearchSession(make_settings(), client=library.client()) as session:
            listings = await session.browse("mars", with_metadata=False)

        assert [listing.title for listing in listings] == ["mars dust", "Mars Soil"]
        assert all(listing.authors is None and listing.year is None for listing in listings)
        assert library.document_requests() == []

    @pytest.mark.asyncio
    async def test_unconfigured_session_cannot_browse(self):
        async with SearchSession(make_settings(manifest_url="", base_url="")) as session:
            with pytest.raises(MissingConfigurationError):
                await session.browse()
