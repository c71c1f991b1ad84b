"""lxml implementation of the BatchParser port for Redbook full-text XML."""

import logging
import re
from pathlib import Path
from typing import List, Optional

from lxml import etree

from ..application.domain import BatchParser, Claim, PatentRecord
from ..application.exceptions import ConfigurationError, ParseError

FAIL = "fail"
SKIP = "skip"

_BIBLIOGRAPHIC = "us-bibliographic-data-application"
_DOC_NUMBER_PATH = "publication-reference/document-id/doc-number"

# Root element attribute -> PatentRecord field
_ROOT_ATTRIBUTES = {
    "lang": "language",
    "country": "country",
    "date-produced": "date_produced",
    "date-publ": "date_published",
    "dtd-version": "dtd_version",
    "file": "source_file",
    "status": "status",
}


def _normalize(text: str) -> str:
    return " ".join(text.split())


def _text_of(element) -> str:
    """Full text content of an element and its descendants."""
    return _normalize("".join(element.itertext()))


def _own_claim_text(claim_text) -> str:
    """Text of a claim-text element, leaving out nested claim-text children."""
    parts = [claim_text.text or ""]
    for child in claim_text:
        if child.tag != "claim-text":
            parts.extend(child.itertext())
        parts.append(child.tail or "")
    return _normalize("".join(parts))


def _require(value: Optional[str], field: str) -> str:
    if not value:
        raise ParseError(f"missing required field '{field}'")
    return value


def _require_element(parent, path: str):
    element = parent.find(path)
    if element is None:
        raise ParseError(f"missing required element '{path}'")
    return element


class LxmlBatchParser(BatchParser):
    """
    Splits a raw batch into documents and projects each into a PatentRecord.

    A batch is many complete XML documents laid end to end (each with its own
    declaration and doctype), so it is not itself well-formed. Documents are
    cut out on their root element, which never nests, and every field inside
    a document is read from an lxml tree by explicit path.
    """

    def __init__(self, root_tag: str = "us-patent-application", on_error: str = FAIL):
        """
        Initializes the parser.

        Args:
            root_tag: The root element name of each document in a batch.
            on_error: "fail" to raise on the first bad document, "skip" to
                      log it and carry on with the rest of the batch.

        Raises:
            ConfigurationError: If on_error is not a known policy.
        """

        if on_error not in (FAIL, SKIP):
            raise ConfigurationError(
                f"Unknown parser error policy {on_error!r}; "
                f"expected '{FAIL}' or '{SKIP}'."
            )

        self.logger = logging.getLogger(self.__class__.__name__)
        self.root_tag = root_tag
        self.on_error = on_error
        tag = re.escape(root_tag)
        self._document_pattern = re.compile(
            rf"<{tag}(?:\s[^>]*)?>.*?</{tag}\s*>",
            re.IGNORECASE | re.DOTALL,
        )
        self._xml_parser = etree.XMLParser(
            recover=False,
            resolve_entities=False,
            load_dtd=False,
            no_network=True,
            remove_comments=True,
            remove_pis=True,
        )

    def split_documents(self, batch_text: str) -> List[str]:
        """Cuts a batch into one markup segment per document, in order."""
        return self._document_pattern.findall(batch_text)

    def _parse_claims(self, claims_section) -> List[Claim]:
        claims = []
        for claim in claims_section.findall("claim"):
            claim_text = _require_element(claim, "claim-text")
            claims.append(
                Claim(
                    generic_text=_own_claim_text(claim_text),
                    sub_claims=tuple(
                        _text_of(sub_claim)
                        for sub_claim in claim_text.findall("claim-text")
                    ),
                )
            )
        return claims

    def parse_document(self, segment: str) -> PatentRecord:
        """
        Parses one document segment into a PatentRecord.

        Raises:
            ParseError: If the markup is malformed or a required field is
                        missing.
        """

        try:
            root = etree.fromstring(segment.encode("utf-8"), self._xml_parser)
        except etree.XMLSyntaxError as e:
            raise ParseError(f"malformed document: {e}") from e

        fields = {
            field: _require(root.get(attribute), attribute)
            for attribute, field in _ROOT_ATTRIBUTES.items()
        }

        abstract = _require_element(root, "abstract")
        claims_section = _require_element(root, "claims")
        description = _require_element(root, "description")
        bibliographic = _require_element(root, _BIBLIOGRAPHIC)
        title = _require_element(bibliographic, "invention-title")

        return PatentRecord(
            abstract_paragraphs=tuple(
                _text_of(paragraph) for paragraph in abstract.findall("p")
            ),
            claims=tuple(self._parse_claims(claims_section)),
            headings=tuple(
                _text_of(heading) for heading in description.findall("heading")
            ),
            invention_title=_require(_text_of(title), "invention-title"),
            invention_id=_require(title.get("id"), "invention-title/@id"),
            document_number=_require(
                (bibliographic.findtext(_DOC_NUMBER_PATH) or "").strip(),
                _DOC_NUMBER_PATH,
            ),
            **fields,
        )

    def parse_batch(self, path: Path) -> List[PatentRecord]:
        """
        Parses every document in a raw batch file.

        Args:
            path: The extracted batch file.

        Returns:
            One record per document, in the order they appear in the file.

        Raises:
            ParseError: Under the "fail" policy, for the first document that
                        cannot be parsed.
        """

        try:
            batch_text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ParseError(f"Failed to read batch {path.name}: {e}") from e

        records = []

        for index, segment in enumerate(self.split_documents(batch_text)):
            try:
                records.append(self.parse_document(segment))
            except ParseError as e:
                if self.on_error == FAIL:
                    raise ParseError(
                        f"{path.name}, document {index}: {e}"
                    ) from e
                self.logger.warning(
                    f"Skipping document {index} in {path.name}: {e}"
                )

        self.logger.info(f"Parsed {len(records)} document(s) from {path.name}")
        return records
