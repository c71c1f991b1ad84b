"""
Pydantic models for validating processed-record files and the ledger.

These models are the on-disk contract for the JSON record cache: camelCase
keys, one object per stored record. Anything that deviates is caught here,
before it reaches the store.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, StrictStr, TypeAdapter
from pydantic.alias_generators import to_camel


class StoredRecordModel(BaseModel):
    """
    One stored record as it appears in a processed-record file.

    `abstract_paragraphs`, `claims` and `headings` hold JSON text, not
    arrays; they are written to the store as-is.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )

    language: str
    country: str
    date_produced: str
    date_published: str
    dtd_version: str
    source_file: str
    status: str
    abstract_paragraphs: str
    claims: str
    headings: str
    invention_title: str
    invention_id: str
    document_number: str


ProcessedFileAdapter = TypeAdapter(List[StoredRecordModel])

# The synchronization ledger: a JSON array of record file names.
LedgerAdapter = TypeAdapter(List[StrictStr])
