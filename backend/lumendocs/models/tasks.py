# FILE: backend/lumendocs/models/tasks.py
# Task payloads are tagged by `kind` and decoded through an explicit schema.
# Anything that does not decode into a known variant is rejected.

from typing import Annotated, Any, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import UnknownTaskPayloadError


class AddDocumentToCorpusTask(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["add_document_to_corpus"] = "add_document_to_corpus"
    file_id: str = Field(min_length=1)
    temp_key: str = Field(min_length=1)
    # Formatted with `external_file_id=` once the corpus id is resolved.
    final_key_template: str = Field(min_length=1)
    corpus_name: str = Field(min_length=1)
    display_name: str = Field(min_length=1)

    def final_key(self, external_file_id: str) -> str:
        return self.final_key_template.format(external_file_id=external_file_id)


class ReconcileCorpusTask(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["reconcile_corpus"] = "reconcile_corpus"
    corpus_name: str = Field(min_length=1)


TaskPayload = Annotated[
    Union[AddDocumentToCorpusTask, ReconcileCorpusTask],
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter = TypeAdapter(TaskPayload)


def parse_task_payload(raw: Mapping[str, Any]) -> Union[AddDocumentToCorpusTask, ReconcileCorpusTask]:
    try:
        return _payload_adapter.validate_python(raw)
    except PydanticValidationError as e:
        raise UnknownTaskPayloadError(f"Rejected task payload: {e.errors(include_url=False)}") from e
