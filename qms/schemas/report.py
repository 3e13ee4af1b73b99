"""Dashboard and analytics responses."""
from datetime import datetime
from typing import Dict, List, Optional

from qms.schemas.base import CamelModel
from qms.schemas.client import ClientOut
from qms.schemas.quotation import QuotationSummaryOut


class DashboardStatsOut(CamelModel):
    clients: int
    quotations: int
    total_revenue: float
    average_quotation: float
    accepted_quotations: int
    pending_quotations: int
    status_counts: Dict[str, int]


class DashboardOut(CamelModel):
    stats: DashboardStatsOut
    recent_quotations: List[QuotationSummaryOut]


class TaxSummaryOut(CamelModel):
    total_tax: float
    average_tax_rate: float


class DiscountSummaryOut(CamelModel):
    total_discounts: float
    average_discount: float


class TopClientOut(CamelModel):
    client: ClientOut
    total_value: float
    quotation_count: int
    acceptance_rate: float
    last_quotation_at: Optional[datetime] = None


class ItemStatOut(CamelModel):
    description: str
    count: int
    total_value: float
    average_price: float


class CategoryStatOut(CamelModel):
    count: int
    total_value: float
    average_value: float


class MonthlyTrendOut(CamelModel):
    month: str
    quotations: int
    revenue: float
    accepted: int
    rejected: int


class YearlyTrendOut(CamelModel):
    year: str
    quotations: int
    revenue: float
    growth: float


class AnalyticsOut(CamelModel):
    total_quotations: int
    quotations_by_status: Dict[str, int]
    conversion_rate: float
    total_revenue: float
    accepted_revenue: float
    rejected_revenue: float
    average_quotation_value: float
    currency_breakdown: Dict[str, float]
    tax_summary: TaxSummaryOut
    discount_summary: DiscountSummaryOut
    total_clients: int
    quotations_per_client: Dict[int, int]
    top_clients: List[TopClientOut]
    inactive_clients: List[ClientOut]
    most_quoted_items: List[ItemStatOut]
    category_breakdown: Dict[str, CategoryStatOut]
    monthly_trends: List[MonthlyTrendOut]
    yearly_trends: List[YearlyTrendOut]
    seasonal_demand: Dict[str, int]
    pending_quotations: List[QuotationSummaryOut]
    expiring_soon: List[QuotationSummaryOut]
    expected_revenue: float
    pipeline_value: float
