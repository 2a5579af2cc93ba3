#!/usr/bin/env python3
"""
CSV data handler for DMC student records.

Loads student data exported from the DMC portal (comma separated, no quoting,
fixed column positions), validates records before they are sent to the portal
and exports result sets back to CSV with Thai column headers.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pandas as pd

from data_dictionary import DataDictionary, DmcDataError, get_data_dictionary

logger = logging.getLogger("csv_data_handler")

NATIONAL_ID_PATTERN = re.compile(r"[0-9]{13}")
INTEGER_PREFIX_PATTERN = re.compile(r"^\s*([+-]?\d+)")

NUMERIC_FIELDS = ("age", "weight", "height")


class CsvLoadError(DmcDataError):
    """Raised when a CSV file cannot be read."""


class CsvExportError(DmcDataError):
    """Raised when a CSV file cannot be written."""


@dataclass(frozen=True)
class SchemaVariant:
    """Fixed column layout of a student CSV file."""

    name: str
    columns: Tuple[str, ...]
    identifier_field: str
    identifier_label: str
    require_national_id_format: bool = False

    def column_index(self, name: str) -> int:
        return self.columns.index(name)


_COLUMNS = (
    "schoolCode", "schoolName", "studentCid", "grade", "room", "studentNumber",
    "gender", "titlePrefix", "firstName", "lastName", "birthDate",
    "age", "weight", "height",
    "bloodType", "religion", "ethnicity", "nationality",
    "houseNumber", "village", "street", "subdistrict", "district", "province",
    "guardianFirstName", "guardianLastName", "guardianOccupation", "guardianRelation",
    "fatherFirstName", "fatherLastName", "fatherOccupation",
    "motherFirstName", "motherLastName", "motherOccupation",
    "disadvantaged", "unresolved",
)

# Files keyed by the 13 digit national ID in column 2
NATIONAL_ID = SchemaVariant(
    name="national_id",
    columns=_COLUMNS,
    identifier_field="studentCid",
    identifier_label="National ID",
    require_national_id_format=True,
)

# Files keyed by the school's own student ID in column 2
STUDENT_ID = SchemaVariant(
    name="student_id",
    columns=tuple("studentId" if name == "studentCid" else name for name in _COLUMNS),
    identifier_field="studentId",
    identifier_label="Student ID",
)

SCHEMA_VARIANTS = {variant.name: variant for variant in (NATIONAL_ID, STUDENT_ID)}


def get_schema_variant(name: str) -> SchemaVariant:
    """Look up a schema variant by name ('national_id' or 'student_id')."""
    try:
        return SCHEMA_VARIANTS[name]
    except KeyError:
        raise ValueError(f"Unknown schema variant: {name}") from None


def parse_int(value: Any) -> int:
    """
    Parse the leading integer of a value, returning 0 when there is none.

    "13" -> 13, "13.7" -> 13, " 42kg" -> 42, "abc" -> 0, "" -> 0
    """
    if value is None:
        return 0
    match = INTEGER_PREFIX_PATTERN.match(str(value))
    return int(match.group(1)) if match else 0


class StudentRecord:
    """One row of student data. Attributes are named after the schema columns."""

    def __init__(self, values: Dict[str, Any]):
        self.__dict__.update(values)

    def get(self, name: str, default: Any = None) -> Any:
        return self.__dict__.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StudentRecord):
            return NotImplemented
        return self.__dict__ == other.__dict__

    def __repr__(self) -> str:
        name = f"{self.get('firstName', '')} {self.get('lastName', '')}".strip()
        return f"StudentRecord(studentNumber={self.get('studentNumber')!r}, name={name!r})"


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)


class CsvDataHandler:
    """
    Load, filter, validate and export student CSV data.
    """

    def __init__(self, dictionary: Optional[DataDictionary] = None, variant: Union[SchemaVariant, str] = NATIONAL_ID):
        """
        Initialize the handler.

        Args:
            dictionary: Field dictionary used for export headers (defaults to the process-wide dictionary)
            variant: Column layout of the files to load, as a SchemaVariant or its name
        """
        self.dictionary = dictionary if dictionary is not None else get_data_dictionary()
        self.variant = get_schema_variant(variant) if isinstance(variant, str) else variant

    def map_row_to_student(self, values: Sequence[str]) -> StudentRecord:
        """Map a split CSV row onto a StudentRecord using the active column layout."""
        record = {}
        for index, name in enumerate(self.variant.columns):
            raw = values[index] if index < len(values) else ""
            if name in NUMERIC_FIELDS:
                record[name] = parse_int(raw)
            else:
                record[name] = raw or ""
        return StudentRecord(record)

    def load_student_data_with_summary(self, file_path: Union[str, Path]) -> Tuple[List[StudentRecord], Dict[str, int]]:
        """
        Load student records and report how many lines were skipped.

        Args:
            file_path: Path to a UTF-8 CSV file whose first line is a header

        Returns:
            Tuple of (records in file order, summary dict of counts)

        Raises:
            CsvLoadError: If the file cannot be read
        """
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace", newline="") as f:
                content = f.read()
        except OSError as e:
            raise CsvLoadError(f"Error loading CSV file: {e}") from e

        lines = content.split("\n")
        header_count = len(lines[0].split(","))

        summary = {
            "total_lines": max(len(lines) - 1, 0),
            "loaded": 0,
            "skipped_blank": 0,
            "skipped_column_mismatch": 0,
            "skipped_mapping_error": 0,
        }
        students: List[StudentRecord] = []

        for line_number, raw_line in enumerate(lines[1:], start=2):
            line = raw_line.strip()
            if not line:
                summary["skipped_blank"] += 1
                continue

            values = line.split(",")
            if len(values) != header_count:
                summary["skipped_column_mismatch"] += 1
                logger.debug(f"Skipping line {line_number}: {len(values)} columns, expected {header_count}")
                continue

            try:
                students.append(self.map_row_to_student(values))
            except Exception as e:
                summary["skipped_mapping_error"] += 1
                logger.debug(f"Skipping line {line_number}: error mapping row to student: {e}")

        summary["loaded"] = len(students)
        logger.info(f"Loaded {len(students)} student records from {file_path}")
        return students, summary

    def load_student_data(self, file_path: Union[str, Path]) -> List[StudentRecord]:
        """Load student records from a CSV file, dropping blank and malformed lines."""
        students, _ = self.load_student_data_with_summary(file_path)
        return students

    def get_student_ids(self, file_path: Union[str, Path]) -> List[str]:
        """Return the non-blank identifiers (national ID or student ID, per variant) in the file."""
        identifier = self.variant.identifier_field
        students = self.load_student_data(file_path)
        return [student.get(identifier, "") for student in students if student.get(identifier, "").strip() != ""]

    def get_student_numbers(self, file_path: Union[str, Path]) -> List[str]:
        """Return the non-blank student numbers in the file."""
        students = self.load_student_data(file_path)
        return [student.get("studentNumber", "") for student in students if student.get("studentNumber", "").strip() != ""]

    @staticmethod
    def filter_students_by_grade(students: Sequence[StudentRecord], grade: str) -> List[StudentRecord]:
        return [student for student in students if student.get("grade") == grade]

    @staticmethod
    def filter_students_by_room(students: Sequence[StudentRecord], room: str) -> List[StudentRecord]:
        return [student for student in students if student.get("room") == room]

    def attribute_name(self, key: str) -> str:
        """Return the record attribute holding dictionary field key under the active column layout."""
        if key == NATIONAL_ID.identifier_field:
            return self.variant.identifier_field
        return key

    def get_data_dictionary(self) -> DataDictionary:
        return self.dictionary

    def validate_student_record(self, student: StudentRecord) -> ValidationResult:
        """
        Check that the fields needed by the portal are filled in.

        Every check runs, so a record missing several fields gets one error per field.
        """
        errors: List[str] = []

        identifier = student.get(self.variant.identifier_field) or ""
        label = self.variant.identifier_label
        if identifier.strip() == "":
            errors.append(f"{label} is required")
        elif self.variant.require_national_id_format and not NATIONAL_ID_PATTERN.fullmatch(identifier):
            errors.append(f"{label} must be 13 digits")

        if not _is_filled(student.get("studentNumber")):
            errors.append("Student number is required")

        if not _is_filled(student.get("firstName")):
            errors.append("First name is required")

        if not _is_filled(student.get("lastName")):
            errors.append("Last name is required")

        if not _is_filled(student.get("schoolCode")):
            errors.append("School code is required")

        return ValidationResult(is_valid=len(errors) == 0, errors=errors)

    def export_to_csv(self, students: Sequence[StudentRecord], output_path: Union[str, Path]):
        """
        Write students to a CSV file with Thai headers in dictionary order.

        Args:
            students: Records to export
            output_path: Destination file, overwritten if it exists

        Raises:
            CsvExportError: If the file cannot be written
        """
        keys = self.dictionary.keys()
        header = ",".join(self.dictionary.thai_headers())
        rows = [",".join(_render(student.get(self.attribute_name(key))) for key in keys) for student in students]
        content = header + "\n" + "\n".join(rows)

        try:
            with open(output_path, "w", encoding="utf-8", newline="") as f:
                f.write(content)
        except OSError as e:
            raise CsvExportError(f"Error writing CSV file: {e}") from e

        logger.info(f"Exported {len(students)} student records to {output_path}")

    def records_to_dataframe(self, students: Sequence[StudentRecord]) -> pd.DataFrame:
        """Return the students as a DataFrame with one column per dictionary key."""
        keys = self.dictionary.keys()
        return pd.DataFrame([{key: student.get(self.attribute_name(key)) for key in keys} for student in students], columns=keys)


def _is_filled(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def _render(value: Any) -> str:
    return "" if value is None else str(value)
