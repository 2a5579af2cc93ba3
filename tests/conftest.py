from pathlib import Path

import pytest

from data_dictionary import DataDictionary, reset_data_dictionary_cache

DICTIONARY_PATH = Path(__file__).resolve().parent.parent / "data" / "data-dictionary.json"

HEADER = ",".join(f"col{i}" for i in range(36))

SAMPLE_ROW = (
    "36022006,ภูเขียว,1368400145149,ม.2,5,12,ญ,เด็กหญิง,เกวลิน,เฝ้าทรัพย์,20/03/2555,13,0,0,B,"
    "พุทธ,ไทย,ไทย,99,4,,ผักปัง,ภูเขียว,ชัยภูมิ,สมชาย,เฝ้าทรัพย์,เกษตรกร,บิดา,"
    "สมชาย,เฝ้าทรัพย์,เกษตรกร,สมหญิง,เฝ้าทรัพย์,รับจ้าง,ไม่มี,"
)


def make_row(**overrides):
    """Return a 36 column row based on SAMPLE_ROW with some positions replaced."""
    from csv_data_handler import NATIONAL_ID

    values = SAMPLE_ROW.split(",")
    for name, value in overrides.items():
        values[NATIONAL_ID.column_index(name)] = str(value)
    return ",".join(values)


@pytest.fixture
def dictionary():
    return DataDictionary.load(DICTIONARY_PATH)


@pytest.fixture
def write_csv(tmp_path):
    def _write(lines, name="students.csv"):
        path = tmp_path / name
        path.write_text("\n".join(lines), encoding="utf-8")
        return path
    return _write


@pytest.fixture(autouse=True)
def clear_dictionary_cache():
    reset_data_dictionary_cache()
    yield
    reset_data_dictionary_cache()
