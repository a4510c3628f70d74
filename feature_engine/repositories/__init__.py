"""資料存取 Repositories"""

from feature_engine.repositories.database import Base, create_session_factory, init_db
from feature_engine.repositories.daily import (
    ChipRepository,
    PriceRepository,
    StockRepository,
)
from feature_engine.repositories.features import (
    BreadthRepository,
    ChipFeatureRepository,
    IndicatorRepository,
    InstitutionalTrendRepository,
    SectorDailyRepository,
    TechFeatureRepository,
)

__all__ = [
    # Database
    "Base",
    "create_session_factory",
    "init_db",
    # Source
    "PriceRepository",
    "ChipRepository",
    "StockRepository",
    # Features
    "IndicatorRepository",
    "TechFeatureRepository",
    "ChipFeatureRepository",
    "BreadthRepository",
    "InstitutionalTrendRepository",
    "SectorDailyRepository",
]
