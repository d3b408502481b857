from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional

from app.domain.models import Company, NewsEvent, PriceChange, PricePoint


class CompanySchema(BaseModel):
    ticker: str
    name: str
    sector: str
    description: str
    base_price: float
    volatility: float

    @classmethod
    def from_domain(cls, company: Company) -> "CompanySchema":
        return cls(
            ticker=company.ticker,
            name=company.name,
            sector=company.sector,
            description=company.description,
            base_price=company.base_price,
            volatility=company.volatility,
        )


class PricePointSchema(BaseModel):
    ticker: str
    price: float = Field(..., gt=0, allow_inf_nan=False)
    timestamp: datetime

    @classmethod
    def from_domain(cls, point: PricePoint) -> "PricePointSchema":
        return cls(ticker=point.ticker, price=point.price, timestamp=point.timestamp)

    def to_domain(self) -> PricePoint:
        return PricePoint(ticker=self.ticker, price=self.price, timestamp=self.timestamp)


class NewsEventSchema(BaseModel):
    ticker: str
    headline: str
    body: str
    sentiment: float = Field(..., ge=-1.0, le=1.0)
    magnitude: float = Field(..., ge=0.3, le=1.0)
    timestamp: datetime

    @classmethod
    def from_domain(cls, event: NewsEvent) -> "NewsEventSchema":
        return cls(
            ticker=event.ticker,
            headline=event.headline,
            body=event.body,
            sentiment=event.sentiment,
            magnitude=event.magnitude,
            timestamp=event.timestamp,
        )


class QuoteSchema(BaseModel):
    ticker: str
    price: float
    change: float
    change_pct: float

    @classmethod
    def from_domain(cls, change: PriceChange) -> "QuoteSchema":
        return cls(
            ticker=change.ticker,
            price=change.price,
            change=change.change,
            change_pct=change.percent,
        )


class MarketSnapshotSchema(BaseModel):
    started_at: datetime
    tick_count: int
    last_tick_at: Optional[datetime] = None
    last_news_at: Optional[datetime] = None
    companies: List[CompanySchema]
    quotes: Dict[str, QuoteSchema]
    news: List[NewsEventSchema]
