import numbers
import os
from typing import Any, Iterable, List, Mapping, Optional, Union

import pandas as pd
from loguru import logger
from pydantic import BaseModel

from constants import DEFAULT_CLIENT_AGE

CONTRACT_NUMBER_COL = "Contract Number"
CLIENT_AGE_COL = "Client Age"
CONTRACT_VALUE_COL = "Contract Value"
BENEFIT_BASE_COL = "Benefit Base"
PAYOUT_RATE_COL = "Payout Rate"
ROLLUP_RATE_COL = "Roll-up Rate"

EXCEL_EXTENSIONS = (".xlsx", ".xls")


class BookLoadError(Exception):
    """Raised when a contract book file cannot be read."""


class BookInputs(BaseModel):
    """Engine inputs aggregated over a selection of contract records."""

    start_value: float = 0.0
    benefit_base: Optional[float] = None
    payout_rate: float = 0.0
    rollup_rate: float = 0.0
    client_age: int = DEFAULT_CLIENT_AGE
    record_count: int = 0


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_currency(value: Any) -> float:
    """'$1,234.50' -> 1234.5, '(500)' -> -500.0. Anything unparsable is 0.0."""
    if _is_missing(value):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace("$", "").replace(",", "").replace(" ", "")
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    try:
        amount = float(text)
    except ValueError:
        return 0.0
    return -amount if negative else amount


def parse_percent(value: Any) -> float:
    """
    '6.10%' -> 0.061. Numeric cells (Excel percent-formatted cells) already hold the
    fraction and pass through. Anything unparsable is 0.0.
    """
    if _is_missing(value):
        return 0.0
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return float(value)
    text = str(value).strip().rstrip("%").strip()
    try:
        return float(text) / 100
    except ValueError:
        return 0.0


def parse_age(value: Any) -> int:
    if _is_missing(value):
        return DEFAULT_CLIENT_AGE
    try:
        return int(float(str(value).strip()))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CLIENT_AGE


def load_contract_book(file_path: str) -> pd.DataFrame:
    """
    Reads a contract book spreadsheet (CSV or Excel).

    CSV cells are kept as text so that formatted values such as ``$250,000`` or
    ``6.10%`` survive loading unchanged. Excel cells keep their stored type, so a
    percent-formatted cell arrives as its fraction. Numeric coercion happens at
    aggregation time.
    """
    if not os.path.exists(file_path):
        raise BookLoadError(f"Contract book not found at: {file_path}")

    ext = os.path.splitext(file_path)[1].lower()
    try:
        if ext == ".csv":
            book = pd.read_csv(file_path, dtype=str, keep_default_na=False)
        elif ext in EXCEL_EXTENSIONS:
            book = pd.read_excel(file_path, dtype=object, keep_default_na=False)
        else:
            raise BookLoadError(f"Unsupported contract book format '{ext}': {file_path}")
    except BookLoadError:
        raise
    except Exception as e:
        raise BookLoadError(f"Error reading contract book '{file_path}': {e}") from e

    book.columns = [str(c).strip() for c in book.columns]
    logger.info(f"Loaded {len(book)} contract records from {file_path}")
    return book


def records_to_frame(records: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    """Builds a book frame from raw row mappings (e.g. rows posted by the dashboard)."""
    book = pd.DataFrame(list(records))
    book.columns = [str(c).strip() for c in book.columns]
    return book


def select_records(
    book: pd.DataFrame, contract_numbers: Optional[List[Union[str, int]]] = None
) -> pd.DataFrame:
    """Rows whose contract number is selected. No selection means the whole book."""
    if not contract_numbers or CONTRACT_NUMBER_COL not in book.columns:
        return book
    wanted = {str(n).strip() for n in contract_numbers}
    numbers = book[CONTRACT_NUMBER_COL].astype(str).str.strip()
    selected = book[numbers.isin(wanted)]
    missing = wanted - set(numbers[numbers.isin(wanted)])
    if missing:
        logger.warning(
            f"{len(missing)} selected contract(s) not found in the book: {sorted(missing)}"
        )
    return selected


def _column(records: pd.DataFrame, name: str) -> pd.Series:
    if name in records.columns:
        return records[name]
    return pd.Series([None] * len(records), index=records.index, dtype=object)


def aggregate_book_inputs(records: pd.DataFrame) -> BookInputs:
    """
    Sums contract values and benefit bases and averages the payout and roll-up rates
    over the selected records. A record with a blank benefit base contributes its
    contract value instead. The client age comes from the first record.
    """
    if records is None or records.empty:
        return BookInputs()

    values = _column(records, CONTRACT_VALUE_COL).map(parse_currency)
    payout_rates = _column(records, PAYOUT_RATE_COL).map(parse_percent)
    rollup_rates = _column(records, ROLLUP_RATE_COL).map(parse_percent)

    benefit_base = None
    if BENEFIT_BASE_COL in records.columns:
        raw_bases = records[BENEFIT_BASE_COL]
        has_base = raw_bases.map(lambda v: not _is_missing(v) and bool(str(v).strip()))
        if has_base.any():
            bases = raw_bases.map(parse_currency).where(has_base, values)
            benefit_base = max(float(bases.sum()), 0.0)

    return BookInputs(
        start_value=max(float(values.sum()), 0.0),
        benefit_base=benefit_base,
        payout_rate=float(payout_rates.mean()),
        rollup_rate=float(rollup_rates.mean()),
        client_age=parse_age(_column(records, CLIENT_AGE_COL).iloc[0]),
        record_count=len(records),
    )
