"""End-to-end investment analysis."""

from .models import AnalysisRequest, AnalysisResult
from .quality import DataQuality, assess_quality
from .recommendation import Recommendation, recommend
from .service import AnalysisService

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "AnalysisService",
    "DataQuality",
    "Recommendation",
    "assess_quality",
    "recommend",
]
