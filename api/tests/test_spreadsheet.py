import datetime as dt

import pytest

from bulk_import.spreadsheet import SpreadsheetError, read_records

from tests.helpers import xlsx_bytes


def test_xlsx_first_row_is_header_and_blank_rows_are_skipped() -> None:
    data = xlsx_bytes(
        [
            ["First Name", "Last Name", None, "DOB"],
            ["Ann", "Lee", "ignored", dt.datetime(2010, 5, 14)],
            [None, None, None, None],
            ["Bo", "Chan", None, 40179],
        ]
    )

    records = read_records(data, ".xlsx")

    assert records == [
        {"First Name": "Ann", "Last Name": "Lee", "DOB": dt.datetime(2010, 5, 14)},
        {"First Name": "Bo", "Last Name": "Chan", "DOB": 40179},
    ]


def test_duplicate_headers_keep_the_first_column() -> None:
    data = "username,username,password\nann,other,pw\n".encode("utf-8")
    assert read_records(data, ".csv") == [{"username": "ann", "password": "pw"}]


def test_csv_with_bom_is_read() -> None:
    data = "\ufefffirstname,lastname\nAnn,Lee\n".encode("utf-8")
    assert read_records(data, ".CSV") == [{"firstname": "Ann", "lastname": "Lee"}]


def test_header_only_sheet_has_no_records() -> None:
    assert read_records(xlsx_bytes([["First Name", "Last Name"]]), ".xlsx") == []


def test_garbage_xlsx_is_rejected() -> None:
    with pytest.raises(SpreadsheetError):
        read_records(b"not a workbook", ".xlsx")


def test_unknown_extension_is_rejected() -> None:
    with pytest.raises(SpreadsheetError):
        read_records(b"", ".ods")
