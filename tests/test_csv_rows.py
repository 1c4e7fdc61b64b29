import base64

import pytest

from statement_categorizer.domain.csv_rows import (
    convert_to_iso_date,
    decode_upload,
    parse_csv,
    row_to_fields,
)


def test_parse_single_valid_row() -> None:
    rows, errors = parse_csv("Date,Amount,Payee\n15/01/2024,-45.50,COUNTDOWN")

    assert errors == []
    assert len(rows) == 1
    row = rows[0]
    assert row.row_number == 2
    assert row.is_valid

    fields = row_to_fields(row)
    assert fields.date == "2024-01-15"
    assert fields.amount == -45.50
    assert fields.payee == "COUNTDOWN"
    assert fields.reference is None


def test_invalid_amount_is_reported_but_row_kept() -> None:
    rows, errors = parse_csv("Date,Amount,Payee\n15/01/2024,abc,COUNTDOWN")

    assert len(rows) == 1
    assert not rows[0].is_valid
    assert len(errors) == 1
    assert errors[0].field == "Amount"
    assert errors[0].row == 2
    assert "abc" in errors[0].message


def test_row_can_collect_several_errors() -> None:
    content = "Date,Amount,Payee\n2024-01-15,12.00,\n01/02/2024,1e5,SHOP"
    rows, errors = parse_csv(content)

    assert [row.row_number for row in rows] == [2, 3]
    fields_by_row = {(e.row, e.field) for e in errors}
    assert fields_by_row == {(2, "Payee"), (2, "Date"), (3, "Amount")}


def test_optional_columns_are_mapped() -> None:
    content = (
        "Date,Amount,Payee,Particulars,Reference,Tran Type,Processed Date\n"
        "3/7/2024, 120.00 , ACME LTD ,Salary,JULY,CR,4/7/2024\n"
    )
    rows, errors = parse_csv(content)

    assert errors == []
    fields = row_to_fields(rows[0])
    assert fields.date == "2024-07-03"
    assert fields.amount == 120.0
    assert fields.payee == "ACME LTD"
    assert fields.particulars == "Salary"
    assert fields.reference == "JULY"
    assert fields.tran_type == "CR"
    assert fields.processed_date == "2024-07-04"
    assert fields.code is None


def test_blank_lines_are_skipped() -> None:
    content = "Date,Amount,Payee\n\n15/01/2024,1.00,A SHOP\n   \n16/01/2024,2.00,B SHOP\n"
    rows, errors = parse_csv(content)

    assert errors == []
    assert [row.payee for row in rows] == ["A SHOP", "B SHOP"]
    assert [row.row_number for row in rows] == [2, 3]


def test_header_only_yields_nothing() -> None:
    assert parse_csv("Date,Amount,Payee\n") == ([], [])
    assert parse_csv("") == ([], [])


def test_malformed_document_yields_single_error() -> None:
    content = "Date,Amount,Payee\n15/01/2024,1.00\n"
    rows, errors = parse_csv(content)

    assert rows == []
    assert len(errors) == 1
    assert errors[0].row == 0
    assert errors[0].message.startswith("CSV parsing failed:")
    assert errors[0].raw_data == content[:100]


def test_malformed_preview_is_truncated() -> None:
    content = "Date,Amount,Payee\n" + "x" * 300 + ",1\n"
    _, errors = parse_csv(content)

    assert len(errors[0].raw_data) == 100


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("15/01/2024", "2024-01-15"),
        ("5/3/2024", "2024-03-05"),
        ("31/02/2024", "2024-02-31"),
    ],
)
def test_convert_to_iso_date(value: str, expected: str) -> None:
    assert convert_to_iso_date(value) == expected


def test_convert_to_iso_date_rejects_wrong_shape() -> None:
    with pytest.raises(ValueError):
        convert_to_iso_date("2024-01-15")


def test_decode_upload_accepts_base64_and_plain_text() -> None:
    text = "Date,Amount,Payee\n15/01/2024,-45.50,COUNTDOWN"
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")

    assert decode_upload(encoded) == text
    assert decode_upload(text) == text


def test_non_ascii_digits_are_rejected() -> None:
    rows, errors = parse_csv("Date,Amount,Payee\n١٥/01/2024,-١٢.50,SHOP")

    assert not rows[0].is_valid
    assert {(e.row, e.field) for e in errors} == {(2, "Date"), (2, "Amount")}


def test_byte_order_mark_is_ignored() -> None:
    rows, errors = parse_csv("\ufeffDate,Amount,Payee\n15/01/2024,-45.50,COUNTDOWN")

    assert errors == []
    assert row_to_fields(rows[0]).date == "2024-01-15"


def test_decode_upload_accepts_wrapped_base64() -> None:
    text = "Date,Amount,Payee\n" + "\n".join(
        f"{day}/01/2024,-{day}.00,SUPERMARKET NUMBER {day}" for day in range(1, 20)
    )
    wrapped = base64.encodebytes(text.encode("utf-8")).decode("ascii")

    assert "\n" in wrapped.strip()
    assert decode_upload(wrapped) == text


def test_decode_upload_strips_byte_order_mark() -> None:
    encoded = base64.b64encode("\ufeffDate,Amount,Payee".encode("utf-8")).decode("ascii")

    assert decode_upload(encoded) == "Date,Amount,Payee"
