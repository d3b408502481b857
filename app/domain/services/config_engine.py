"""
CONFIG ENGINE
Load, validate, and expose the static company roster

RESPONSIBILITIES:
- Load YAML configuration files
- Validate configuration integrity
- Expose read-only typed objects

RULES:
❌ No defaults if config missing
✅ Fail fast on invalid config
✅ Deterministic output
"""

import yaml
from pathlib import Path
from typing import Dict, List
from dataclasses import dataclass

from app.domain.models import Company

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


@dataclass(frozen=True)
class CompanyUniverse:
    """Collection of all configured companies"""
    companies: List[Company]


class ConfigEngine:
    """
    Configuration Engine
    Single source of truth for the static market configuration
    """

    def __init__(self, config_dir: Path = DEFAULT_CONFIG_DIR):
        """Initialize with config directory"""
        self.config_dir = config_dir
        self._company_universe: CompanyUniverse = None

    def load_all(self) -> None:
        """Load all configuration files"""
        self._load_companies()

    def _load_companies(self) -> None:
        """Load fallback company roster from companies.yml"""
        companies_file = self.config_dir / "companies.yml"
        if not companies_file.exists():
            raise FileNotFoundError(f"Company config not found: {companies_file}")

        with open(companies_file, 'r') as f:
            data = yaml.safe_load(f) or {}

        companies = [company_from_dict(entry) for entry in data.get('companies', [])]
        if not companies:
            raise ValueError(f"No companies defined in {companies_file}")

        tickers = [c.ticker for c in companies]

        # Check for duplicates
        if len(tickers) != len(set(tickers)):
            raise ValueError("Duplicate company tickers found in configuration")

        self._company_universe = CompanyUniverse(companies=companies)

    # Public getters

    @property
    def company_universe(self) -> CompanyUniverse:
        """Get company universe"""
        if self._company_universe is None:
            raise RuntimeError("Config not loaded. Call load_all() first")
        return self._company_universe


def company_from_dict(data: Dict) -> Company:
    """Build a Company from a config or LLM mapping (raises on bad fields)."""
    return Company(
        ticker=str(data['ticker']).strip().upper(),
        name=str(data['name']).strip(),
        sector=str(data['sector']).strip(),
        description=str(data.get('description', '')).strip(),
        base_price=float(data['base_price']),
        volatility=float(data['volatility']),
    )
