#!/usr/bin/env python3
"""
DMC Student Data - Command Line Interface

Prepares student CSV files for the DMC portal automation: lists the
identifiers to check, validates records, filters by grade/room and
re-exports data with Thai column headers.
"""

import sys
import logging
import argparse
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from config import DATA_DICTIONARY_PATH, DEFAULT_SETTINGS, SCHEMA_VARIANTS, csv_file_path
from data_dictionary import DataDictionary, DmcDataError
from csv_data_handler import CsvDataHandler

logger = logging.getLogger("dmc_cli")


def configure_logging(log_level: str = DEFAULT_SETTINGS["log_level"]):
    """Configure root logging to both a log file and stdout."""
    log_level = log_level.upper()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(DEFAULT_SETTINGS["log_file"], encoding="utf-8"),
            logging.StreamHandler(sys.stdout)
        ]
    )
    logging.getLogger().setLevel(getattr(logging, log_level))
    for handler in logging.getLogger().handlers:
        handler.setLevel(getattr(logging, log_level))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Prepare and check student CSV data for the DMC portal')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], default=DEFAULT_SETTINGS['log_level'], help='Set logging level')
    parser.add_argument('--variant', choices=SCHEMA_VARIANTS, default=DEFAULT_SETTINGS['schema_variant'], help='Column layout of the CSV file')
    parser.add_argument('--dictionary', default=str(DATA_DICTIONARY_PATH), help='Path to the data dictionary JSON file')
    parser.add_argument('--lenient', action='store_true', help='Use the built-in dictionary if the dictionary file cannot be loaded')

    subparsers = parser.add_subparsers(dest='command', required=True)

    ids_parser = subparsers.add_parser('ids', help='Print student identifiers, one per line')
    ids_parser.add_argument('--csv', help='Student CSV file (defaults to DATA_DIR/CSV_FILE_NAME)')
    ids_parser.add_argument('--student-numbers', action='store_true', help='Print student numbers instead of identifiers')

    validate_parser = subparsers.add_parser('validate', help='Validate required fields of every record')
    validate_parser.add_argument('--csv', help='Student CSV file (defaults to DATA_DIR/CSV_FILE_NAME)')
    validate_parser.add_argument('--report', help='Write a validation report CSV to this path')

    filter_parser = subparsers.add_parser('filter', help='Export the records of one grade and/or room')
    filter_parser.add_argument('--csv', help='Student CSV file (defaults to DATA_DIR/CSV_FILE_NAME)')
    filter_parser.add_argument('--grade', help='Grade to keep, e.g. ม.2')
    filter_parser.add_argument('--room', help='Room to keep, e.g. 5')
    filter_parser.add_argument('--output', required=True, help='Output CSV file')

    export_parser = subparsers.add_parser('export', help='Re-export records with Thai headers')
    export_parser.add_argument('--csv', help='Student CSV file (defaults to DATA_DIR/CSV_FILE_NAME)')
    export_parser.add_argument('--output', required=True, help='Output CSV file')

    fields_parser = subparsers.add_parser('fields', help='List the fields of the data dictionary')
    fields_parser.add_argument('--required', action='store_true', help='Only list required fields')

    stats_parser = subparsers.add_parser('stats', help='Count records per grade and room')
    stats_parser.add_argument('--csv', help='Student CSV file (defaults to DATA_DIR/CSV_FILE_NAME)')

    return parser


def _source(args: argparse.Namespace) -> Path:
    return Path(args.csv) if args.csv else csv_file_path()


def cmd_ids(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    source = _source(args)
    if args.student_numbers:
        ids = handler.get_student_numbers(source)
    else:
        ids = handler.get_student_ids(source)

    if not ids:
        logger.warning(f"No student IDs found in CSV file: {source}")
    for student_id in ids:
        print(student_id)
    logger.info(f"Loaded {len(ids)} student IDs from CSV file: {source}")
    return 0


def cmd_validate(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    source = _source(args)
    students, summary = handler.load_student_data_with_summary(source)
    skipped = summary["skipped_column_mismatch"] + summary["skipped_mapping_error"]
    if skipped:
        logger.warning(f"{skipped} malformed lines were skipped while loading {source}")

    identifier = handler.variant.identifier_field
    report_lines = ["Identifier,Valid,Errors"]
    invalid_count = 0

    for student in tqdm(students, desc="Validating records", disable=not students):
        result = handler.validate_student_record(student)
        if not result.is_valid:
            invalid_count += 1
            logger.warning(f"Invalid record {student.get(identifier) or student.get('studentNumber')}: {', '.join(result.errors)}")
        report_lines.append(f"{student.get(identifier, '')},{result.is_valid},{'; '.join(result.errors)}")

    if args.report:
        report_path = Path(args.report)
        try:
            report_path.parent.mkdir(parents=True, exist_ok=True)
            report_path.write_text("\n".join(report_lines), encoding="utf-8")
        except OSError as e:
            logger.error(f"Error writing validation report: {e}")
            return 1
        logger.info(f"Validation report saved to {report_path}")

    print(f"\nValidation Summary:")
    print(f"  Source File: {source}")
    print(f"  Records: {len(students)}")
    print(f"  Valid: {len(students) - invalid_count}")
    print(f"  Invalid: {invalid_count}")
    print(f"  Skipped Lines: {skipped}")

    return 0 if invalid_count == 0 else 1


def cmd_filter(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    students = handler.load_student_data(_source(args))
    if args.grade is not None:
        students = handler.filter_students_by_grade(students, args.grade)
    if args.room is not None:
        students = handler.filter_students_by_room(students, args.room)

    handler.export_to_csv(students, args.output)
    print(f"Exported {len(students)} records to {args.output}")
    return 0


def cmd_export(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    students = handler.load_student_data(_source(args))
    handler.export_to_csv(students, args.output)
    print(f"Exported {len(students)} records to {args.output}")
    return 0


def cmd_fields(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    dictionary = handler.get_data_dictionary()
    keys = dictionary.get_required_fields() if args.required else dictionary.keys()
    for key in keys:
        info = dictionary.get_field_info(key)
        marker = "*" if info.required else " "
        print(f"{marker} {key:<20} {info.type:<7} {info.thai_name} ({info.english_name})")
    print(f"\n{len(keys)} of {dictionary.get_column_count()} fields")
    return 0


def cmd_stats(handler: CsvDataHandler, args: argparse.Namespace) -> int:
    students = handler.load_student_data(_source(args))
    if not students:
        print("No student records found")
        return 0

    df = handler.records_to_dataframe(students)
    counts = df.groupby(["grade", "room"]).size().reset_index(name="students")
    print(counts.to_string(index=False))
    print(f"\nTotal: {len(df)} students")
    return 0


COMMANDS = {
    "ids": cmd_ids,
    "validate": cmd_validate,
    "filter": cmd_filter,
    "export": cmd_export,
    "fields": cmd_fields,
    "stats": cmd_stats,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main function to run the command line interface."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    strict = DEFAULT_SETTINGS["strict_dictionary"] and not args.lenient
    try:
        dictionary = DataDictionary.load(args.dictionary, strict=strict)
        handler = CsvDataHandler(dictionary, variant=args.variant)
        return COMMANDS[args.command](handler, args)
    except (DmcDataError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
