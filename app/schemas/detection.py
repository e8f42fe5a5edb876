from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NON_PILL_SENTINEL = "Not a Pharmaceutical Pill"


class AnalyzeRequest(BaseModel):
    image: str | None = None
    hint: str | None = Field(default=None, max_length=500)


class UpstreamDetection(BaseModel):
    """Shape the completion service is asked to produce.

    Only ``name`` is mandatory. Text fields must be strings when present;
    ``confidence`` is accepted as-is and coerced during normalization.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    generic_name: str | None = None
    brand_name: str | None = None
    drug_class: str | None = None
    confidence: Any = None
    description: str | None = None
    color: str | None = None
    shape: str | None = None
    imprint: str | None = None
    usage: str | None = None
    warnings: list[str] | None = None

    @field_validator("warnings", mode="before")
    @classmethod
    def _single_warning(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class DetectionResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    generic_name: str = ""
    brand_name: str = ""
    drug_class: str = ""
    confidence: float
    description: str = ""
    color: str = ""
    shape: str = ""
    imprint: str = ""
    usage: str = ""
    warnings: list[str] = []

    @property
    def is_pill(self) -> bool:
        return self.name.strip() != NON_PILL_SENTINEL

    def to_response(self) -> dict:
        return self.model_dump(by_alias=True)
