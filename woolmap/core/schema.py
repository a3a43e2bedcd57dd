"""Schema definitions and loaders for per-producer auction sale records."""

import json
import logging
from dataclasses import asdict, dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

logger = logging.getLogger(__name__)


class SchemaColumns(StrEnum):
    """Column names of the producer sale DataFrame."""

    # Used to refer to the DataFrame integer index.
    DF_ID = "df_id"

    REGION = "REGION"
    POSITION = "POSITION"
    PRODUCER_NAME = "PRODUCER_NAME"
    DISTRICT = "DISTRICT"
    PRICE = "PRICE"
    MICRON = "MICRON"
    CERTIFIED = "CERTIFIED"
    BUYER_NAME = "BUYER_NAME"


# The report data source marks certified lots with this literal.
CERTIFIED_MARKER = "RWS"


class ProducerSaleSchema(pa.DataFrameModel):
    REGION: Series[str] = pa.Field(nullable=False)
    POSITION: Series[pd.Int64Dtype] = pa.Field(nullable=True, ge=0)
    PRODUCER_NAME: Series[str] = pa.Field(nullable=True)
    DISTRICT: Series[str] = pa.Field(nullable=True)
    # Price per kilogram, in ZAR.
    PRICE: Series[float] = pa.Field(nullable=False, ge=0)
    MICRON: Series[float] = pa.Field(nullable=True, ge=0)
    CERTIFIED: Series[bool] = pa.Field(nullable=False)
    BUYER_NAME: Series[str] = pa.Field(nullable=True)

    class Config:
        strict = True
        coerce = True


required_columns = [
    SchemaColumns.REGION,
    SchemaColumns.POSITION,
    SchemaColumns.PRODUCER_NAME,
    SchemaColumns.DISTRICT,
    SchemaColumns.PRICE,
    SchemaColumns.MICRON,
    SchemaColumns.CERTIFIED,
    SchemaColumns.BUYER_NAME,
]


@dataclass(frozen=True)
class ProducerSale:
    """One ranked result from an auction report."""

    region: str
    position: int
    producer_name: str
    district: str
    price: float
    micron: Optional[float] = None
    certified: bool = False
    buyer_name: str = "Unknown"

    def to_record(self) -> dict[str, Any]:
        return asdict(self)


# Maps the field names used by the report data source onto DataFrame columns.
_RECORD_FIELD_TO_COLUMN: dict[str, SchemaColumns] = {
    "region": SchemaColumns.REGION,
    "province": SchemaColumns.REGION,
    "position": SchemaColumns.POSITION,
    "producer_name": SchemaColumns.PRODUCER_NAME,
    "name": SchemaColumns.PRODUCER_NAME,
    "district": SchemaColumns.DISTRICT,
    "price": SchemaColumns.PRICE,
    "micron": SchemaColumns.MICRON,
    "certified": SchemaColumns.CERTIFIED,
    "buyer_name": SchemaColumns.BUYER_NAME,
}


def normalize_certified(value: Any) -> bool:
    """Interpret the certification flag as written by the report data source.

    The source writes ``"RWS"`` for certified lots and ``""`` otherwise; plain
    booleans are accepted as well.
    """
    if value is None:
        return False
    if hasattr(value, "item"):
        # numpy scalars
        value = value.item()
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().upper() in (CERTIFIED_MARKER, "TRUE", "YES", "1")
    if isinstance(value, (int, float)):
        return bool(value) and not pd.isna(value)
    return False


def _flatten_record(record: dict[str, Any]) -> list[dict[str, Any]]:
    """Expand one input record into flat sale rows.

    A record is either a single flat sale, or a province group of the form
    ``{"province": ..., "producers": [...]}``. Group members keep their input order.
    """
    if "producers" not in record:
        return [record]

    province = record.get("province")
    producers = record.get("producers") or []
    if not isinstance(producers, list):
        raise ValueError(f"Expected a list of producers for {province=}")
    rows = []
    for producer in producers:
        if not isinstance(producer, dict):
            raise ValueError(f"Expected a mapping per producer for {province=}")
        rows.append({**producer, "province": province})
    return rows


def records_to_dataframe(records: Iterable[dict[str, Any]]) -> pd.DataFrame:
    """
    Convert sale records into a DataFrame conforming to ProducerSaleSchema.

    Both flat sale records and nested province groups are accepted; unknown
    fields are ignored. Row order follows input order, which the aggregator relies on.

    Args:
        records: Iterable of record dictionaries

    Returns:
        Validated DataFrame indexed by df_id
    """
    rows = []
    for record in records:
        for flat in _flatten_record(record):
            row = {}
            for field_name, value in flat.items():
                column = _RECORD_FIELD_TO_COLUMN.get(field_name)
                if column is not None and column not in row:
                    row[column] = value
            rows.append(row)

    df = pd.DataFrame(rows, columns=required_columns)
    df[SchemaColumns.CERTIFIED] = (
        df[SchemaColumns.CERTIFIED].map(normalize_certified).astype(bool)
    )
    # A missing micron is reported as 0 by the data source.
    df[SchemaColumns.MICRON] = pd.to_numeric(
        df[SchemaColumns.MICRON], errors="coerce"
    ).replace(0, float("nan"))
    df[SchemaColumns.PRICE] = pd.to_numeric(df[SchemaColumns.PRICE], errors="coerce")

    missing_price = df[SchemaColumns.PRICE].isna()
    if missing_price.any():
        logger.warning(
            f"Dropping {int(missing_price.sum())} sale rows without a usable price"
        )
        df = df.loc[~missing_price]

    validated_df = ProducerSaleSchema.validate(df, lazy=True)
    validated_df = validated_df.reset_index(drop=True)
    validated_df.index.name = SchemaColumns.DF_ID
    return validated_df


def sales_to_dataframe(sales: Sequence[ProducerSale]) -> pd.DataFrame:
    """Convert ProducerSale objects into a validated sale DataFrame."""
    return records_to_dataframe(sale.to_record() for sale in sales)


def empty_sales_dataframe() -> pd.DataFrame:
    return records_to_dataframe([])


def load_jsonl_to_dataframe(jsonl_path: Path) -> pd.DataFrame:
    """
    Load a JSONL file of auction sales into a DataFrame conforming to ProducerSaleSchema.

    Each line holds either one flat sale or one province group with a list of producers.

    Args:
        jsonl_path: Path to the JSONL file

    Returns:
        DataFrame with schema columns validated, indexed by df_id
    """
    if not jsonl_path.exists():
        raise FileNotFoundError(f"JSONL file not found: {jsonl_path}")

    records = []
    with open(jsonl_path, encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON on line {line_num}: {e}")
            if not isinstance(record, dict):
                raise ValueError(f"Expected a JSON object on line {line_num}")
            records.append(record)

    result_df = records_to_dataframe(records)
    logger.info(f"Loaded {len(result_df)} sale records from {jsonl_path=}")
    return result_df
