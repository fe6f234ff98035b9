"""Domain services for GameBin.

Services implement schema inference, form handling, validation and the
collection store. They depend only on entities and exceptions; remote access
is injected.
"""

from gamebin.domain.services.collection_catalog import DEFAULT_COLLECTIONS, CollectionCatalog
from gamebin.domain.services.collection_store import (
    CollectionStore,
    RemoteFetch,
    generate_id,
    records_to_csv,
    sort_records,
    unwrap_envelope,
)
from gamebin.domain.services.form_synthesizer import (
    FieldDescriptor,
    FormSynthesizer,
    describe_form,
    extract_record,
    form_values,
)
from gamebin.domain.services.record_validator import (
    RecordValidationError,
    RecordValidator,
    validate_record,
)
from gamebin.domain.services.schema_inference import format_label, infer_schema

__all__ = [
    "CollectionCatalog",
    "CollectionStore",
    "DEFAULT_COLLECTIONS",
    "FieldDescriptor",
    "FormSynthesizer",
    "RecordValidationError",
    "RecordValidator",
    "RemoteFetch",
    "describe_form",
    "extract_record",
    "form_values",
    "format_label",
    "generate_id",
    "infer_schema",
    "records_to_csv",
    "sort_records",
    "unwrap_envelope",
    "validate_record",
]
