"""Document record schema shared by the loader and the content stores."""

from typing import Any, Dict, Mapping, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationError,
)

from docs_sync.core.exceptions import RecordValidationError


class DiscoveredRef(BaseModel):
    """Addresses of one eligible entry found by discovery. Never persisted."""

    model_config = ConfigDict(frozen=True)

    metadata_url: str = Field(..., description="Contents API address of the entry")
    content_url: str = Field(..., description="Raw download address of the entry")


class DocumentLinks(BaseModel):
    """The ``_links`` object GitHub attaches to each content entry."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    self_link: StrictStr = Field(..., alias="self")
    git: StrictStr
    html: StrictStr


class DocumentRecord(BaseModel):
    """A synced Markdown document as stored and read by site renderers.

    Field names, including ``_links``, are the stored shape; serialize with
    :meth:`to_store` rather than ``model_dump`` so the alias is kept.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: StrictStr
    path: StrictStr
    sha: StrictStr
    size: Union[StrictInt, StrictFloat]
    url: StrictStr = Field(..., description="Canonical metadata address, the store key")
    html_url: StrictStr
    git_url: StrictStr
    download_url: StrictStr
    type: StrictStr
    content: StrictStr = Field(..., description="Markdown text after link rewriting")
    encoding: StrictStr
    links: DocumentLinks = Field(..., alias="_links")

    @property
    def key(self) -> str:
        return self.url

    def to_store(self) -> Dict[str, Any]:
        """Serialize using the stored field names."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_store(cls, data: Mapping[str, Any]) -> "DocumentRecord":
        return cls.model_validate(dict(data))


def validate_record(candidate: Mapping[str, Any]) -> DocumentRecord:
    """Validate a merged candidate against the document schema.

    Raises:
        RecordValidationError: if any field is missing or has the wrong kind.
    """
    try:
        return DocumentRecord.model_validate(dict(candidate))
    except ValidationError as e:
        url = candidate.get("url") if isinstance(candidate.get("url"), str) else "<unknown>"
        raise RecordValidationError(url, e.errors(include_url=False)) from e
