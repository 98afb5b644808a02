import json
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import ConversionStatus


class Paper(BaseModel):
    """
    Bibliographic metadata of an acquired paper, as written by the
    acquisition stage to papers/metadata/<id>.yaml.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    title: str = ""
    authors: List[str] = Field(default_factory=list)
    date: Optional[str] = None
    abstract: str = ""
    source_url: str = ""
    pdf_path: str = ""
    source: Optional[str] = None
    conversion_status: ConversionStatus = ConversionStatus.NONE

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        # YAML reads ids like 2301.07041 as floats
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def normalize_date(cls, v: Any) -> Optional[str]:
        """YAML timestamps arrive as date/datetime objects; store ISO strings."""
        if v is None or v == "":
            return None
        if isinstance(v, (datetime, date)):
            return v.isoformat()
        return str(v)

    @field_validator("authors", mode="before")
    @classmethod
    def normalize_authors(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return [str(a) for a in v if a is not None]
        return [str(v)]

    @field_validator("conversion_status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> Any:
        return v or ConversionStatus.NONE

    def authors_json(self) -> str:
        """Serializes the ordered author list for the papers table."""
        return json.dumps(self.authors, ensure_ascii=False)
