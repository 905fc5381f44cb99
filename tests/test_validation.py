import asyncio

import httpx

from reference_harvester.crossref import CrossrefClient
from reference_harvester.metadata import AuthorityError
from reference_harvester.models import Author, Extraction
from reference_harvester.openalex import OpenAlexClient
from reference_harvester.validation import (
    CitationValidator,
    build_bibliographic_query,
    find_best_match,
)

CROSSREF_WORK = {
    "title": ["Windowed extraction of citations"],
    "author": [{"family": "Doe", "given": "Jane"}],
    "issued": {"date-parts": [[2021]]},
    "container-title": ["Journal of Testing"],
}

OPENALEX_WORK = {
    "title": "Windowed extraction of citations",
    "publication_year": 2021,
    "authorships": [{"author": {"display_name": "Jane Doe"}}],
}


class FakeCrossref:
    def __init__(self, record=None, results=None, error=None):
        self.record = record
        self.results = results or []
        self.error = error
        self.queries = []

    async def lookup_doi(self, doi, user_email=""):
        if self.error:
            raise self.error
        return self.record

    async def search_bibliographic(self, query, user_email=""):
        self.queries.append(query)
        if self.error:
            raise self.error
        return self.results

    async def aclose(self):
        return None


class FakeOpenAlex:
    def __init__(self, record=None):
        self.record = record
        self.pmids = []

    async def lookup_doi(self, doi, user_email=""):
        return self.record

    async def lookup_pmid(self, pmid, user_email=""):
        self.pmids.append(pmid)
        return self.record

    async def aclose(self):
        return None


def _citation(**kwargs) -> Extraction:
    defaults = dict(
        title="Windowed extraction of citations",
        authors=[Author(family="Doe", given="J.")],
        year="2021",
    )
    defaults.update(kwargs)
    return Extraction(**defaults)


def _validate(validator: CitationValidator, citation: Extraction) -> Extraction:
    return asyncio.run(validator.validate(citation))


def test_doi_verified_via_crossref():
    validator = CitationValidator(FakeCrossref(record=CROSSREF_WORK), FakeOpenAlex(record=OPENALEX_WORK))

    result = _validate(validator, _citation(doi="10.1/x"))

    assert result.validation_status == "valid"
    assert result.validation_message == "DOI verified via CrossRef (100% match)"
    assert result.validation.crossref is CROSSREF_WORK
    assert result.validation.openalex is OPENALEX_WORK
    assert result.validation.match_score.overall == 1.0


def test_doi_falls_back_to_openalex_when_crossref_fails():
    validator = CitationValidator(
        FakeCrossref(error=AuthorityError("CrossRef error: 500")), FakeOpenAlex(record=OPENALEX_WORK)
    )

    result = _validate(validator, _citation(doi="10.1/x"))

    assert result.validation_status == "valid"
    assert result.validation_message.startswith("DOI verified via OpenAlex")


def test_pmid_lookup_goes_to_openalex():
    openalex = FakeOpenAlex(record=OPENALEX_WORK)
    validator = CitationValidator(FakeCrossref(), openalex)

    result = _validate(validator, _citation(pmid="999"))

    assert openalex.pmids == ["999"]
    assert result.validation_message.startswith("PMID verified via OpenAlex")


def test_search_picks_best_scoring_result():
    other = {"title": ["Something unrelated entirely"], "issued": {"date-parts": [[1999]]}}
    crossref = FakeCrossref(results=[other, CROSSREF_WORK])
    validator = CitationValidator(crossref, FakeOpenAlex())

    result = _validate(validator, _citation(query_bibliographic="Doe 2021 windowed extraction"))

    assert crossref.queries == ["Doe 2021 windowed extraction"]
    assert result.validation_status == "valid"
    assert result.validation.crossref is CROSSREF_WORK
    assert result.validation_message.startswith("Matched via bibliographic search")


def test_search_builds_query_when_missing():
    crossref = FakeCrossref(results=[])
    validator = CitationValidator(crossref, FakeOpenAlex())

    result = _validate(validator, _citation(raw_text="Doe J. Windowed extraction of citations. 2021."))

    assert crossref.queries == ["Doe 2021 Windowed extraction of citations"]
    assert result.validation_status == "invalid"
    assert result.validation_message == "Could not verify citation"


def test_search_failure_is_a_verdict_not_an_exception():
    validator = CitationValidator(FakeCrossref(error=AuthorityError("down")), FakeOpenAlex())

    result = _validate(validator, _citation(query_bibliographic="Doe 2021"))

    assert result.validation_status == "invalid"


def test_nothing_to_look_up_is_invalid():
    validator = CitationValidator(FakeCrossref(), FakeOpenAlex())

    result = _validate(validator, Extraction(title="Lonely"))

    assert result.validation_status == "invalid"
    assert result.validation_message == "Could not verify citation"


def test_mismatching_record_gets_mismatch_verdict():
    wrong = {"title": ["Totally different paper"], "author": [{"family": "Roe"}], "issued": {"date-parts": [[1990]]}}
    validator = CitationValidator(FakeCrossref(record=wrong), FakeOpenAlex())

    result = _validate(validator, _citation(doi="10.1/x"))

    assert result.validation_status == "mismatch"
    assert "content mismatch" in result.validation_message


def test_query_and_best_match_helpers():
    citation = _citation(container_title="Journal of Testing", title="One two three four five six seven")

    assert build_bibliographic_query(citation) == "Doe 2021 One two three four five Journal of Testing"
    assert find_best_match(citation, []) is None


def test_malformed_doi_response_still_reaches_search():
    searched = []

    def crossref_handler(request: httpx.Request) -> httpx.Response:
        if "query.bibliographic" in request.url.params:
            searched.append(request.url.params["query.bibliographic"])
            return httpx.Response(200, json={"message": {"items": [CROSSREF_WORK]}})
        return httpx.Response(200, json=["unexpected"])

    def openalex_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(crossref_handler)) as crossref_http:
            async with httpx.AsyncClient(transport=httpx.MockTransport(openalex_handler)) as openalex_http:
                validator = CitationValidator(
                    CrossrefClient(client=crossref_http), OpenAlexClient(client=openalex_http)
                )
                return await validator.validate(_citation(doi="10.1/x", raw_text="Doe J. Windowed"))

    result = asyncio.run(run())

    assert searched == ["Doe 2021 Windowed extraction of citations"]
    assert result.validation_status == "valid"
    assert result.validation_message.startswith("Matched via bibliographic search")


def test_unexpected_lookup_exception_counts_as_no_record():
    class BrokenOpenAlex(FakeOpenAlex):
        async def lookup_doi(self, doi, user_email=""):
            raise AttributeError("'list' object has no attribute 'get'")

    validator = CitationValidator(FakeCrossref(record=CROSSREF_WORK), BrokenOpenAlex())

    result = _validate(validator, _citation(doi="10.1/x"))

    assert result.validation_status == "valid"
    assert result.validation.openalex is None
