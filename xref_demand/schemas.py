import math
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class DemandRow(BaseModel):
    """
    Defines the contract for one raw retailer demand row after ingestion.
    Quantity is already annualized by the producer.
    """

    record_id: str
    brand: Optional[str] = None
    part_number: str
    quantity: float = Field(..., ge=0)
    region: str
    period: Optional[str] = None

    @field_validator("record_id", "part_number", "region", mode="before")
    @classmethod
    def _required_text(cls, value):
        if value is None or (isinstance(value, float) and math.isnan(value)):
            raise ValueError("field is missing")
        text = str(value).strip()
        if not text:
            raise ValueError("field is blank")
        return text

    @field_validator("brand", "period", mode="before")
    @classmethod
    def _optional_text(cls, value):
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return None
        text = str(value).strip()
        return text or None

    @field_validator("quantity", mode="before")
    @classmethod
    def _finite_quantity(cls, value):
        if value is None or (isinstance(value, float) and math.isnan(value)):
            raise ValueError("quantity is missing")
        if isinstance(value, str):
            value = value.strip()
            if not value:
                raise ValueError("quantity is missing")
        number = float(value)
        if not math.isfinite(number):
            raise ValueError("quantity must be a finite number")
        return number


class SalesRow(BaseModel):
    """Internal sales for one SKU in one region, as exported from the BI tool."""

    sku: str
    region: str
    sales: float = Field(..., ge=0)


class CrossEntry(BaseModel):
    """One brand-to-internal equivalence fact from the wide catalog."""

    brand: str
    cross_key: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)


class ResolvedEntry(CrossEntry):
    """The single winning CrossEntry for a canonical key."""


class ConflictRecord(BaseModel):
    """One candidate of an ambiguous canonical key, kept for catalog curation."""

    cross_key: str
    brand: str
    sku: str
    chosen: bool
    candidate_count: int = Field(..., ge=2)
    distinct_skus: int = Field(..., ge=1)
    conflict_type: str


class RejectedRow(BaseModel):
    row_number: int = Field(..., ge=1)
    record_id: Optional[str] = None
    reason: str


class DemandRecord(BaseModel):
    """
    A demand row enriched with its canonical key and, when matched, the
    catalog brand and internal SKU. A null SKU means no match was found.
    """

    record_id: str
    brand: Optional[str] = None
    part_number: str
    quantity: float = Field(..., ge=0)
    region: str
    period: Optional[str] = None
    cross_key: str
    matched_brand: Optional[str] = None
    sku: Optional[str] = None


class RegionalAggregate(BaseModel):
    """
    Demand rollup for one internal SKU. A region subtotal of None means no
    demand was reported for that region, which is not the same as zero.
    """

    sku: str
    subtotals: dict[str, Optional[float]]
    total: float = Field(..., ge=0)
    rank: int = Field(..., ge=1)


class UnresolvedDemand(BaseModel):
    brand: Optional[str] = None
    cross_key: str
    quantity: float = Field(..., ge=0)
    rows: int = Field(..., ge=1)
    regions: str


class KpiRecord(BaseModel):
    """Benchmark of demand against sales for one SKU in one scope (region or total)."""

    sku: str
    scope: str
    demand: Optional[float] = None
    sales: Optional[float] = None
    lost_opportunity_pct: Optional[float] = None
    penetration_rate: Optional[float] = None
    fill_rate_proxy: Optional[float] = None
