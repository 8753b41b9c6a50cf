import locale
import logging
import textwrap
from pathlib import Path

import pytest

from transaction_anomalies import ParseError, Transaction, normalize_csv, read_transactions_file
from transaction_anomalies.normalizers import parse_amount, read_csv_text

HEADER = "BA,monthly,actCode,amount"


def _dedent(s: str) -> str:
    return textwrap.dedent(s).lstrip("\n")


def test_ids_are_dense_over_kept_rows_and_bad_amounts_are_counted():
    csv_text = _dedent(
        """
        BA,monthly,actCode,amount
        X,2024-01,A1,10
        X,2024-01,A1,abc
        Y,2024-02,A2,"1,234.50"
        Y,2024-02,A2,
        Z,2024-03,A3,-7.25
        """
    )

    result = normalize_csv(csv_text)

    assert [t.id for t in result.transactions] == [0, 1, 2]
    assert [t.amount for t in result.transactions] == [10.0, 1234.5, -7.25]
    assert result.dropped_rows == 2


def test_thousands_separators_are_removed_and_raw_text_is_kept():
    csv_text = f'{HEADER}\nBA1,2024-05,41039160,"12,345,678.90"\n'

    (tx,) = normalize_csv(csv_text).transactions

    assert tx == Transaction(
        id=0,
        business_area="BA1",
        period="2024-05",
        activity_code="41039160",
        amount=12345678.90,
        raw_amount_text="12,345,678.90",
    )


def test_blank_lines_are_skipped_without_counting_as_dropped():
    csv_text = f"{HEADER}\n\nX,2024-01,A1,1\n\n\nX,2024-01,A1,2\n,,,\n"

    result = normalize_csv(csv_text)

    assert [t.amount for t in result.transactions] == [1.0, 2.0]
    assert result.dropped_rows == 0


def test_extra_columns_are_ignored_and_missing_columns_are_empty():
    csv_text = "monthly,note,actCode,amount\n2024-01,hello,A1,5\n"

    (tx,) = normalize_csv(csv_text).transactions

    assert tx.business_area == ""
    assert tx.period == "2024-01"
    assert tx.activity_code == "A1"
    assert tx.amount == 5.0


def test_short_rows_fill_missing_cells_with_empty_strings():
    csv_text = "BA,monthly,amount,actCode\nX,2024-01,9\n"

    (tx,) = normalize_csv(csv_text).transactions

    assert tx.activity_code == ""
    assert tx.amount == 9.0


def test_sort_by_period_is_stable_and_keeps_pre_sort_ids():
    csv_text = _dedent(
        """
        BA,monthly,actCode,amount
        X,2024-03,A1,1
        X,2024-01,A1,2
        X,2024-02,A1,3
        X,2024-01,A1,4
        """
    )

    result = normalize_csv(csv_text, sort_by_period=True)

    assert [t.period for t in result.transactions] == ["2024-01", "2024-01", "2024-02", "2024-03"]
    assert [t.id for t in result.transactions] == [1, 3, 2, 0]
    assert [t.amount for t in result.transactions] == [2.0, 4.0, 3.0, 1.0]


def test_header_only_raises_parse_error():
    with pytest.raises(ParseError):
        normalize_csv(f"{HEADER}\n")


def test_empty_text_raises_parse_error():
    with pytest.raises(ParseError, match="header"):
        normalize_csv("")


def test_all_amounts_invalid_raises_parse_error():
    csv_text = f"{HEADER}\nX,2024-01,A1,abc\nX,2024-02,A1,n/a\n"

    with pytest.raises(ParseError, match="2 row"):
        normalize_csv(csv_text)


def test_unbalanced_quotes_raise_parse_error():
    csv_text = f'{HEADER}\nX,2024-01,A1,"12\n'

    with pytest.raises(ParseError, match="malformed CSV"):
        normalize_csv(csv_text)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,234.50", 1234.5),
        ("  42 ", 42.0),
        ("-0.5", -0.5),
        ("1e3", 1000.0),
        ("1,000", 1000.0),
        ("", None),
        ("abc", None),
        ("12abc", None),
        ("NaN", None),
        ("Infinity", None),
        ("1e400", None),
        (None, None),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


def test_read_transactions_file(tmp_path: Path):
    p = tmp_path / "tx.csv"
    p.write_text(f'{HEADER}\nX,2024-01,A1,"1,000.00"\nX,2024-01,A1,50\n')

    result = read_transactions_file(p)

    assert [t.amount for t in result.transactions] == [1000.0, 50.0]


def test_read_transactions_file_missing_raises_os_error(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        read_transactions_file(tmp_path / "nope.csv")


_UTF8_DEFAULT = pytest.mark.skipif(
    locale.getpreferredencoding(False).lower().replace("-", "") != "utf8",
    reason="depends on a UTF-8 default encoding",
)


@_UTF8_DEFAULT
def test_read_transactions_file_undecodable_raises_parse_error(tmp_path: Path):
    p = tmp_path / "bad.csv"
    p.write_bytes(HEADER.encode() + b"\nX,2024-01,A1,\xff\xfe\n")

    with pytest.raises(ParseError, match="decode"):
        read_transactions_file(p)


def test_leading_bom_does_not_hide_first_column():
    csv_text = "\ufeffamount,BA,monthly,actCode\n12,X,2024-01,A1\n"

    (tx,) = normalize_csv(csv_text).transactions

    assert tx.amount == 12.0
    assert tx.business_area == "X"


@_UTF8_DEFAULT
def test_read_transactions_file_accepts_bom_encoded_file(tmp_path: Path):
    p = tmp_path / "excel.csv"
    p.write_text(f"{HEADER}\nX,2024-01,A1,5\n", encoding="utf-8-sig")

    (tx,) = read_transactions_file(p).transactions

    assert tx.business_area == "X"
    assert tx.amount == 5.0


def test_missing_expected_columns_are_logged(package_logs):
    normalize_csv("amount,BA\n1,X\n")

    (record,) = [r for r in package_logs.records if "missing_columns" in r.getMessage()]
    assert record.levelno == logging.WARNING
    assert "columns=monthly,actCode" in record.getMessage()


def test_complete_header_logs_no_missing_columns(package_logs):
    normalize_csv(f"{HEADER}\nX,2024-01,A1,1\n")

    assert not [r for r in package_logs.records if "missing_columns" in r.getMessage()]


def test_read_csv_text_on_directory_raises_os_error(tmp_path: Path):
    with pytest.raises(OSError):
        read_csv_text(tmp_path)
