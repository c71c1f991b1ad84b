"""Tests for splitting raw batches and projecting documents into records."""
import pytest

from redbook_sync.application.domain import Claim
from redbook_sync.application.exceptions import ConfigurationError, ParseError
from redbook_sync.infrastructure.parser import LxmlBatchParser


@pytest.fixture
def write_batch(tmp_path, batch_factory):
    def _write(*documents, name="ipa200102.xml"):
        path = tmp_path / name
        path.write_text(batch_factory(*documents), encoding="utf-8")
        return path

    return _write


def test_two_document_batch_yields_records_in_source_order(
    write_batch, document_factory
):
    path = write_batch(document_factory("US001"), document_factory("US002"))

    records = LxmlBatchParser().parse_batch(path)

    assert [record.document_number for record in records] == ["US001", "US002"]


def test_root_attributes_are_projected(write_batch, document_factory):
    path = write_batch(document_factory("US001"))

    record = LxmlBatchParser().parse_batch(path)[0]

    assert record.language == "EN"
    assert record.country == "US"
    assert record.date_produced == "20191218"
    assert record.date_published == "20200102"
    assert record.dtd_version == "v4.4 2014-04-03"
    assert record.source_file == "US001-20200102.XML"
    assert record.status == "PRODUCTION"


def test_title_and_identifier_come_from_bibliographic_section(
    write_batch, document_factory
):
    path = write_batch(document_factory("US001", title="Lever &amp; base"))

    record = LxmlBatchParser().parse_batch(path)[0]

    assert record.invention_title == "Lever & base"
    assert record.invention_id == "d2e43"


def test_abstract_and_headings_keep_source_order(write_batch, document_factory):
    path = write_batch(document_factory("US001"))

    record = LxmlBatchParser().parse_batch(path)[0]

    assert record.abstract_paragraphs == (
        "First abstract paragraph of US001.",
        "Second abstract paragraph.",
    )
    assert record.headings == ("BACKGROUND", "SUMMARY", "DETAILED DESCRIPTION")


def test_claims_are_flattened_one_level(write_batch, document_factory):
    path = write_batch(document_factory("US001"))

    record = LxmlBatchParser().parse_batch(path)[0]

    assert record.claims == (
        Claim(
            generic_text="1. A widget comprising:",
            sub_claims=("a base;", "a lever attached to the base."),
        ),
        Claim(
            generic_text="2. The widget of claim 1, wherein the lever is steel.",
            sub_claims=(),
        ),
    )


def test_deeper_sub_claims_stay_inside_their_parent(write_batch, document_factory):
    nested = (
        "<claim-text>a lever attached to the base.</claim-text>",
        "<claim-text>a lever having:\n"
        "<claim-text>a handle; and</claim-text>\n"
        "<claim-text>a pivot.</claim-text>\n"
        "</claim-text>",
    )
    path = write_batch(document_factory("US001").replace(*nested))

    claim = LxmlBatchParser().parse_batch(path)[0].claims[0]

    assert claim.sub_claims == ("a base;", "a lever having: a handle; and a pivot.")


def test_missing_attribute_fails_the_batch_by_default(write_batch, document_factory):
    broken = document_factory("US002").replace(' date-publ="20200102"', "")
    path = write_batch(document_factory("US001"), broken)

    with pytest.raises(ParseError, match="document 1.*date-publ"):
        LxmlBatchParser().parse_batch(path)


def _drop_section(document, tag):
    start = document.index(f"<{tag} ")
    end = document.index(f"</{tag}>") + len(f"</{tag}>")
    return document[:start] + document[end:]


@pytest.mark.parametrize(
    "breaker, field",
    [
        (lambda doc: doc.replace("<doc-number>US002</doc-number>", ""), "doc-number"),
        (lambda doc: doc.replace(' id="d2e43"', ""), "invention-title/@id"),
        (lambda doc: doc.replace(' status="PRODUCTION"', ""), "status"),
        (lambda doc: _drop_section(doc, "abstract"), "abstract"),
        (lambda doc: _drop_section(doc, "description"), "description"),
        (lambda doc: _drop_section(doc, "claims"), "claims"),
    ],
)
def test_missing_required_fields_raise_parse_error(
    write_batch, document_factory, breaker, field
):
    path = write_batch(breaker(document_factory("US002")))

    with pytest.raises(ParseError, match=field):
        LxmlBatchParser().parse_batch(path)


def test_malformed_markup_raises_parse_error(write_batch, document_factory):
    broken = document_factory("US001").replace("</heading>", "", 1)
    path = write_batch(broken)

    with pytest.raises(ParseError, match="malformed"):
        LxmlBatchParser().parse_batch(path)


def test_skip_policy_drops_bad_documents_and_keeps_the_rest(
    write_batch, document_factory, caplog
):
    broken = document_factory("US002").replace("<doc-number>US002</doc-number>", "")
    path = write_batch(
        document_factory("US001"), broken, document_factory("US003")
    )

    records = LxmlBatchParser(on_error="skip").parse_batch(path)

    assert [record.document_number for record in records] == ["US001", "US003"]
    assert "Skipping document 1" in caplog.text


def test_batch_without_documents_is_empty(write_batch):
    path = write_batch('<?xml version="1.0"?>\n<sequence-listing/>\n')

    assert LxmlBatchParser().parse_batch(path) == []


def test_unknown_error_policy_is_rejected():
    with pytest.raises(ConfigurationError):
        LxmlBatchParser(on_error="ignore")


def test_split_documents_ignores_doctype_mentions(document_factory, batch_factory):
    batch = batch_factory(document_factory("US001"), document_factory("US002"))

    segments = LxmlBatchParser().split_documents(batch)

    assert len(segments) == 2
    assert all(segment.startswith("<us-patent-application ") for segment in segments)
    assert all(segment.endswith("</us-patent-application>") for segment in segments)
