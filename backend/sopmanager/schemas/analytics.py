from pydantic import BaseModel
from typing import Optional, List, Dict, Any


class TimeSeriesDataPoint(BaseModel):
    date: str
    value: float
    label: Optional[str] = None


class DashboardResponse(BaseModel):
    total_staff: int
    active_staff: int
    documents_by_status: Dict[str, int]
    completions_in_period: int
    active_certificates: int
    expiring_certificates: int
    training_pass_rate: float
    period_days: int


class SOPAnalyticsResponse(BaseModel):
    total_documents: int
    by_status: Dict[str, int]
    by_priority: Dict[str, int]
    by_category: Dict[str, int]
    completions_total: int
    average_quality_rating: Optional[float] = None
    average_time_minutes: float
    top_documents: List[Dict[str, Any]]
    daily_completions: List[TimeSeriesDataPoint]


class ModuleTrainingStats(BaseModel):
    module_id: str
    title: str
    enrollments: int
    completions: int
    failures: int
    average_score: Optional[float] = None


class TrainingAnalyticsResponse(BaseModel):
    enrollments: int
    completions: int
    failures: int
    average_score: Optional[float] = None
    pass_rate: float
    active_certificates: int
    expiring_certificates: int
    modules: List[ModuleTrainingStats]
    daily_completions: List[TimeSeriesDataPoint]


class LocaleCoverage(BaseModel):
    locale: str
    published: int
    total_keys: int
    completeness: float
    missing: int


class TranslationAnalyticsResponse(BaseModel):
    total_keys: int
    locales: List[LocaleCoverage]
    status_breakdown: Dict[str, int]
