"""
Configuration settings for the DMC student data tools.

This module contains configuration settings shared by the CSV loader, the
validator/exporter and the command-line front end. Values can be overridden
through environment variables or a local .env file.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from a local .env file if present
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

# Portal settings (used by the browser automation scripts)
DMC_PORTAL_URL = os.getenv("DMC_PORTAL_URL", "https://portal.bopp-obec.info/obec68")
SCHOOL_CODE = os.getenv("SCHOOL_CODE", "36022006")
EDUCATION_YEAR = os.getenv("EDUCATION_YEAR", "2568")
LEVEL_DTL_CODE = os.getenv("LEVEL_DTL_CODE", "14")
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "5"))

# Data files
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(BASE_DIR / "output")))
CSV_FILE_NAME = os.getenv("CSV_FILE_NAME", "data.csv")
DATA_DICTIONARY_PATH = Path(os.getenv("DATA_DICTIONARY_PATH", str(BASE_DIR / "data" / "data-dictionary.json")))

# Schema variants
SCHEMA_VARIANTS = ["national_id", "student_id"]

# Default settings
DEFAULT_SETTINGS = {
    "strict_dictionary": os.getenv("STRICT_DATA_DICTIONARY", "true").lower() != "false",  # Fail fast on a broken dictionary
    "schema_variant": os.getenv("SCHEMA_VARIANT", "national_id"),
    "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
    "log_file": "dmc_cli.log",
}


def csv_file_path(file_name: str = None) -> Path:
    """Return the path of the student CSV file inside DATA_DIR."""
    return DATA_DIR / (file_name or CSV_FILE_NAME)
