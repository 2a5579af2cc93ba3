#!/usr/bin/env python3
"""
Field dictionary for DMC student records.

The dictionary maps each record attribute (e.g. ``firstName``) to a
FieldDescriptor holding its Thai and English labels, value type, required
flag and description. The key order of the dictionary is the canonical
column order used when exporting records.

The dictionary is read from a JSON resource shaped like::

    {"fields": {"schoolCode": {"thaiName": "...", "englishName": "...",
                               "type": "string", "required": true,
                               "description": "...", "example": "..."}}}
"""

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from config import DATA_DICTIONARY_PATH

logger = logging.getLogger("data_dictionary")

FIELD_TYPES = ("string", "number", "date")


class DmcDataError(Exception):
    """Base class for errors raised by the student data tools."""


class DataDictionaryError(DmcDataError):
    """Raised when the field dictionary cannot be loaded."""


@dataclass(frozen=True)
class FieldDescriptor:
    """Metadata for one student record attribute."""

    thai_name: str
    english_name: str
    type: str
    required: bool
    description: str
    example: Optional[str] = None

    @classmethod
    def from_dict(cls, key: str, data: Dict[str, Any]) -> "FieldDescriptor":
        """
        Build a descriptor from its JSON representation.

        Args:
            key: Field identifier, only used in error messages
            data: Dictionary with thaiName, englishName, type, required, description and optional example

        Returns:
            FieldDescriptor

        Raises:
            DataDictionaryError: If the entry is not a well-formed descriptor
        """
        if not isinstance(data, dict):
            raise DataDictionaryError(f"Field '{key}' must be an object")
        if not data.get("thaiName"):
            raise DataDictionaryError(f"Field '{key}' has no thaiName")
        field_type = data.get("type", "string")
        if field_type not in FIELD_TYPES:
            raise DataDictionaryError(f"Field '{key}' has unknown type '{field_type}'")

        example = data.get("example")
        return cls(
            thai_name=str(data["thaiName"]),
            english_name=str(data.get("englishName", key)),
            type=field_type,
            required=bool(data.get("required", False)),
            description=str(data.get("description", "")),
            example=str(example) if example is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the descriptor back to its JSON representation."""
        data = {
            "thaiName": self.thai_name,
            "englishName": self.english_name,
            "type": self.type,
            "required": self.required,
            "description": self.description,
        }
        if self.example is not None:
            data["example"] = self.example
        return data


def _field(thai_name, english_name, field_type="string", required=False, description="", example=None):
    entry = {
        "thaiName": thai_name,
        "englishName": english_name,
        "type": field_type,
        "required": required,
        "description": description or english_name,
    }
    if example is not None:
        entry["example"] = example
    return entry


# Built-in dictionary describing the full 36 column layout.
# Used when the JSON resource is missing and lenient loading was requested.
BUILTIN_FIELDS: Dict[str, Dict[str, Any]] = {
    "schoolCode": _field("รหัสโรงเรียน", "School Code", required=True, description="8 digit DMC school code", example="36022006"),
    "schoolName": _field("ชื่อโรงเรียน", "School Name", example="ภูเขียว"),
    "studentCid": _field("เลขประจำตัวประชาชน", "National ID", required=True, description="13 digit national ID number", example="1368400145149"),
    "grade": _field("ชั้น", "Grade", example="ม.2"),
    "room": _field("ห้อง", "Room", example="5"),
    "studentNumber": _field("เลขประจำตัวนักเรียน", "Student Number", required=True, example="12"),
    "gender": _field("เพศ", "Gender", example="ญ"),
    "titlePrefix": _field("คำนำหน้าชื่อ", "Title Prefix", example="เด็กหญิง"),
    "firstName": _field("ชื่อ", "First Name", required=True, example="เกวลิน"),
    "lastName": _field("นามสกุล", "Last Name", required=True, example="เฝ้าทรัพย์"),
    "birthDate": _field("วันเกิด", "Birth Date", "date", description="Birth date in dd/mm/yyyy (Buddhist era)", example="20/03/2555"),
    "age": _field("อายุ(ปี)", "Age", "number", description="Age in years", example="13"),
    "weight": _field("น้ำหนัก", "Weight", "number", description="Weight in kilograms"),
    "height": _field("ส่วนสูง", "Height", "number", description="Height in centimetres"),
    "bloodType": _field("กลุ่มเลือด", "Blood Type", example="B"),
    "religion": _field("ศาสนา", "Religion"),
    "ethnicity": _field("เชื้อชาติ", "Ethnicity"),
    "nationality": _field("สัญชาติ", "Nationality"),
    "houseNumber": _field("บ้านเลขที่", "House Number"),
    "village": _field("หมู่", "Village"),
    "street": _field("ถนน/ซอย", "Street"),
    "subdistrict": _field("ตำบล", "Subdistrict"),
    "district": _field("อำเภอ", "District"),
    "province": _field("จังหวัด", "Province"),
    "guardianFirstName": _field("ชื่อผู้ปกครอง", "Guardian First Name"),
    "guardianLastName": _field("นามสกุลผู้ปกครอง", "Guardian Last Name"),
    "guardianOccupation": _field("อาชีพของผู้ปกครอง", "Guardian Occupation"),
    "guardianRelation": _field("ความเกี่ยวข้องของผู้ปกครองกับนักเรียน", "Guardian Relation"),
    "fatherFirstName": _field("ชื่อบิดา", "Father First Name"),
    "fatherLastName": _field("นามสกุลบิดา", "Father Last Name"),
    "fatherOccupation": _field("อาชีพของบิดา", "Father Occupation"),
    "motherFirstName": _field("ชื่อมารดา", "Mother First Name"),
    "motherLastName": _field("นามสกุลมารดา", "Mother Last Name"),
    "motherOccupation": _field("อาชีพของมารดา", "Mother Occupation"),
    "disadvantaged": _field("ความด้อยโอกาส", "Disadvantaged", description="Disadvantaged status"),
    "unresolved": _field("ปัญหาที่ยังไม่ได้แก้ไข", "Unresolved", description="Unresolved issue status"),
}


class DataDictionary:
    """
    Immutable, ordered mapping from field key to FieldDescriptor.
    """

    def __init__(self, fields: Mapping[str, FieldDescriptor], source: str = "builtin"):
        self._fields = MappingProxyType(dict(fields))
        self.source = source

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "builtin") -> "DataDictionary":
        """Build a dictionary from a parsed ``{"fields": {...}}`` document."""
        if not isinstance(data, dict) or not isinstance(data.get("fields"), dict):
            raise DataDictionaryError("Data dictionary must contain a 'fields' object")

        fields = {key: FieldDescriptor.from_dict(key, value) for key, value in data["fields"].items()}
        return cls(fields, source=source)

    @classmethod
    def builtin(cls) -> "DataDictionary":
        """Return the hard-coded dictionary for the 36 column layout."""
        return cls.from_dict({"fields": BUILTIN_FIELDS}, source="builtin")

    @classmethod
    def load(cls, path: Optional[Union[str, Path]] = None, strict: bool = True) -> "DataDictionary":
        """
        Load the field dictionary from a JSON resource.

        Args:
            path: Path of the JSON resource (defaults to config.DATA_DICTIONARY_PATH)
            strict: Raise on a missing or malformed resource instead of falling back to the built-in dictionary

        Returns:
            DataDictionary

        Raises:
            DataDictionaryError: If the resource cannot be read or parsed and strict is True
        """
        path = Path(path) if path else DATA_DICTIONARY_PATH
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
            dictionary = cls.from_dict(data, source=str(path))
            logger.info(f"Loaded {len(dictionary)} fields from data dictionary {path}")
            return dictionary
        except (OSError, ValueError, DataDictionaryError) as e:
            if strict:
                logger.error(f"Could not load data dictionary from file: {e}")
                raise DataDictionaryError(f"Failed to load data dictionary: {e}") from e

            logger.warning(f"Could not load data dictionary from {path} ({e}), using built-in dictionary")
            return cls.builtin()

    @property
    def fields(self) -> Mapping[str, FieldDescriptor]:
        """Read-only view of the descriptors."""
        return self._fields

    def keys(self) -> List[str]:
        return list(self._fields)

    def get_field_info(self, key: str) -> Optional[FieldDescriptor]:
        """Return the descriptor for key, or None if the key is unknown."""
        return self._fields.get(key)

    def get_required_fields(self) -> List[str]:
        """Return the keys of required fields in dictionary order."""
        return [key for key, descriptor in self._fields.items() if descriptor.required]

    def get_column_count(self) -> int:
        return len(self._fields)

    def thai_headers(self) -> List[str]:
        """Return the Thai display names in dictionary order."""
        return [descriptor.thai_name for descriptor in self._fields.values()]

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": {key: descriptor.to_dict() for key, descriptor in self._fields.items()}}

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __contains__(self, key: object) -> bool:
        return key in self._fields

    def __repr__(self) -> str:
        return f"DataDictionary(fields={len(self._fields)}, source={self.source!r})"


_cache_lock = threading.Lock()
_cached_dictionary: Optional[DataDictionary] = None


def get_data_dictionary(path: Optional[Union[str, Path]] = None, strict: bool = True) -> DataDictionary:
    """
    Return the process-wide data dictionary, loading it on first access.

    Later calls return the cached object without re-reading the resource,
    whatever arguments they pass.
    """
    global _cached_dictionary
    if _cached_dictionary is None:
        with _cache_lock:
            if _cached_dictionary is None:
                _cached_dictionary = DataDictionary.load(path, strict=strict)
    return _cached_dictionary


def reset_data_dictionary_cache():
    """Forget the cached dictionary so the next access reloads it."""
    global _cached_dictionary
    with _cache_lock:
        _cached_dictionary = None
