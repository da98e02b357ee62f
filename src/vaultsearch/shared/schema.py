"""
Collection schema definitions.

A schema file is JSON:

    {
        "name": "movies",
        "indexes": {
            "title": {
                "kind": "filter-match",
                "fields": ["title"],
                "filterSize": 512,
                "filterTermBits": 4,
                "tokenFilters": [{"kind": "downcase"}, {"kind": "ngram", "tokenLength": 3}]
            }
        }
    }

filterSize and filterTermBits are passed through untouched; the bloom
filter validates them when the index is built.
"""
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vaultsearch.errors import InvalidSchemaError
from vaultsearch.shared.protocol import IndexKind

FILTER_OPTION_KEYS = ("filterSize", "filterTermBits")


class IndexSettings(BaseModel):
    """Settings for one index. Unknown keys are kept as filter/text options."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    kind: IndexKind
    field_paths: List[str] = Field(default_factory=list, alias="fields")
    tokenizer: Optional[Dict[str, Any]] = None
    token_filters: Optional[List[Dict[str, Any]]] = Field(default=None, alias="tokenFilters")

    def filter_options(self) -> Dict[str, Any]:
        """Only the keys the filter reads, and only those actually given."""
        extra = self.model_extra or {}
        return {k: extra[k] for k in FILTER_OPTION_KEYS if k in extra}

    def text_settings(self) -> Dict[str, Any]:
        return {"tokenizer": self.tokenizer, "tokenFilters": self.token_filters}


class CollectionSchema(BaseModel):
    """A named collection and its indexes."""
    name: str
    indexes: Dict[str, IndexSettings] = Field(default_factory=dict)


def parse_schema(raw: Dict[str, Any]) -> CollectionSchema:
    """
    Validate a schema dict.

    Raises:
        InvalidSchemaError: on any structural problem
    """
    try:
        schema = CollectionSchema.model_validate(raw)
    except ValidationError as e:
        raise InvalidSchemaError(f"invalid collection schema: {e}") from e

    for name, settings in schema.indexes.items():
        if settings.kind == IndexKind.FILTER_MATCH and not settings.field_paths:
            raise InvalidSchemaError(f"index {name!r} of kind filter-match requires fields")

    return schema


def load_schema(path: Union[str, Path]) -> CollectionSchema:
    """Load and validate a schema file."""
    try:
        raw = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        raise InvalidSchemaError(f"schema file {path} is not valid JSON: {e}") from e
    return parse_schema(raw)
