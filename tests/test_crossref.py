import asyncio
import json

import httpx
import pytest

from reference_harvester.crossref import CrossrefClient, normalize_crossref
from reference_harvester.metadata import AuthorityError
from reference_harvester.openalex import OpenAlexClient, normalize_openalex


def _fake_crossref_work() -> dict:
    return {
        "title": ["Trusted Article Title"],
        "author": [{"family": "Doe", "given": "Jane"}, {"family": "Roe", "given": "Rick"}],
        "container-title": ["Journal of Trust"],
        "issued": {"date-parts": [[2021, 5]]},
        "published-print": {"date-parts": [[2022]]},
        "volume": "4",
        "page": "101-110",
        "DOI": "10.5555/example",
    }


def _fake_openalex_work() -> dict:
    return {
        "title": "Trusted Article Title",
        "publication_year": 2022,
        "doi": "https://doi.org/10.5555/example",
        "authorships": [{"author": {"display_name": "Jane Q. Doe"}}],
        "primary_location": {"source": {"display_name": "Journal of Trust"}},
        "biblio": {"volume": "4", "first_page": "101", "last_page": "110"},
    }


def _run_with(handler, coro_factory):
    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            return await coro_factory(http)

    return asyncio.run(run())


def test_crossref_doi_lookup_returns_message_and_sends_mailto():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = request.url
        return httpx.Response(200, text=json.dumps({"message": _fake_crossref_work()}))

    record = _run_with(
        handler, lambda http: CrossrefClient(client=http).lookup_doi("10.5555/example", "me@example.org")
    )

    assert record["DOI"] == "10.5555/example"
    assert seen["url"].path.startswith("/works/10.5555")
    assert seen["url"].params["mailto"] == "me@example.org"


def test_crossref_missing_doi_is_none():
    record = _run_with(
        lambda request: httpx.Response(404), lambda http: CrossrefClient(client=http).lookup_doi("10.1/none")
    )

    assert record is None


def test_crossref_server_error_raises():
    with pytest.raises(AuthorityError, match="503"):
        _run_with(
            lambda request: httpx.Response(503),
            lambda http: CrossrefClient(client=http).lookup_doi("10.1/x"),
        )


def test_non_object_response_raises():
    with pytest.raises(AuthorityError, match="expected an object"):
        _run_with(
            lambda request: httpx.Response(200, json=["unexpected"]),
            lambda http: CrossrefClient(client=http).lookup_doi("10.1/x"),
        )


def test_crossref_search_limits_rows():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = request.url.params
        items = [{"title": [f"Item {i}"]} for i in range(8)]
        return httpx.Response(200, json={"message": {"items": items}})

    results = _run_with(
        handler, lambda http: CrossrefClient(client=http).search_bibliographic("Doe 2021 trust")
    )

    assert len(results) == 5
    assert seen["params"]["query.bibliographic"] == "Doe 2021 trust"
    assert seen["params"]["rows"] == "5"


def test_crossref_search_treats_404_as_error():
    with pytest.raises(AuthorityError):
        _run_with(
            lambda request: httpx.Response(404),
            lambda http: CrossrefClient(client=http).search_bibliographic("anything"),
        )


def test_normalize_crossref_prefers_print_year():
    record = normalize_crossref(_fake_crossref_work())

    assert record.year == 2022
    assert record.title == "Trusted Article Title"
    assert [a.family for a in record.authors] == ["Doe", "Roe"]
    assert record.journal == "Journal of Trust"
    assert record.pages == "101-110"
    assert normalize_crossref(None) is None


def test_openalex_lookups_build_expected_paths():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode())
        return httpx.Response(200, json=_fake_openalex_work())

    async def both(http):
        client = OpenAlexClient(client=http)
        return await client.lookup_doi("10.5555/example"), await client.lookup_pmid("123456")

    by_doi, by_pmid = _run_with(handler, both)

    assert by_doi["title"] == "Trusted Article Title"
    assert by_pmid is not None
    assert paths[0].startswith("/works/https%3A%2F%2Fdoi.org%2F10.5555%2Fexample")
    assert paths[1].startswith("/works/pmid:123456")


def test_normalize_openalex():
    record = normalize_openalex(_fake_openalex_work())

    assert record.authors[0].family == "Doe"
    assert record.authors[0].given == "Jane Q."
    assert record.pages == "101-110"
    assert record.doi == "10.5555/example"
    assert record.year == 2022


def test_normalize_openalex_ignores_unparseable_year():
    work = dict(_fake_openalex_work(), publication_year="n.d.")

    assert normalize_openalex(work).year is None


def test_injected_client_is_not_closed():
    http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

    async def run():
        client = CrossrefClient(client=http)
        await client.aclose()
        assert not http.is_closed
        await http.aclose()

    asyncio.run(run())
