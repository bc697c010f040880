"""
Target schema registry: the fixed set of fields a catalog row is imported into.

Field order matters for display and for breaking ties during column mapping.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FieldType(str, Enum):
    """Value type of a target field; each has exactly one normalizer."""
    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ENUM = "enum"
    IMAGES = "images"


@dataclass(frozen=True)
class TargetFieldSpec:
    key: str
    label: str
    type: FieldType
    required: bool = False
    options: Optional[Tuple[str, ...]] = None
    default: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "key": self.key,
            "label": self.label,
            "required": self.required,
            "type": self.type.value,
        }
        if self.options is not None:
            data["options"] = list(self.options)
        if self.default is not None:
            data["default"] = self.default
        return data


CONDITION_OPTIONS = ("new", "like-new", "very-good", "good", "acceptable", "fair", "poor")
STATUS_OPTIONS = ("draft", "pending", "published", "sold", "archived")

TARGET_FIELDS: Tuple[TargetFieldSpec, ...] = (
    TargetFieldSpec("title", "Title", FieldType.STRING, required=True),
    TargetFieldSpec("author", "Author", FieldType.STRING),
    TargetFieldSpec("isbn", "ISBN", FieldType.STRING),
    TargetFieldSpec("description", "Description", FieldType.TEXT),
    TargetFieldSpec("short_description", "Short Description", FieldType.TEXT),
    TargetFieldSpec("price", "Price", FieldType.NUMBER, required=True),
    TargetFieldSpec("quantity", "Quantity", FieldType.NUMBER, default=1),
    TargetFieldSpec("condition", "Condition", FieldType.ENUM, options=CONDITION_OPTIONS),
    TargetFieldSpec("category", "Category", FieldType.STRING),
    TargetFieldSpec("status", "Status", FieldType.ENUM, options=STATUS_OPTIONS, default="draft"),
    TargetFieldSpec("sku", "SKU", FieldType.STRING),
    TargetFieldSpec("images", "Images (URLs)", FieldType.IMAGES),
    TargetFieldSpec("publisher", "Publisher", FieldType.STRING),
    TargetFieldSpec("publication_year", "Publication Year", FieldType.NUMBER),
    TargetFieldSpec("edition", "Edition", FieldType.STRING),
    TargetFieldSpec("language", "Language", FieldType.STRING, default="English"),
    TargetFieldSpec("binding", "Binding", FieldType.STRING),
    TargetFieldSpec("is_signed", "Signed", FieldType.BOOLEAN),
    TargetFieldSpec("weight", "Weight", FieldType.NUMBER),
    TargetFieldSpec("wp_post_id", "WP Post ID", FieldType.NUMBER),
    TargetFieldSpec("sid", "SID (Internal ID)", FieldType.STRING),
    TargetFieldSpec("keywords", "Keywords/Tags", FieldType.STRING),
)

_FIELDS_BY_KEY: Dict[str, TargetFieldSpec] = {f.key: f for f in TARGET_FIELDS}


def list_fields() -> List[TargetFieldSpec]:
    """All importable fields in registry order."""
    return list(TARGET_FIELDS)


def get_field(key: str) -> Optional[TargetFieldSpec]:
    return _FIELDS_BY_KEY.get(key)


def field_keys() -> List[str]:
    return [f.key for f in TARGET_FIELDS]
