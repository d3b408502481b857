"""
Company roster provider - try the LLM, then the static YAML roster.
"""

from __future__ import annotations

import json
import logging
import re
from typing import List, Optional, Sequence

import yaml

from app.domain.errors import InitializationFailure
from app.domain.models import Company
from app.domain.services.config_engine import ConfigEngine, company_from_dict
from app.infrastructure.llm.text_client import TextGenerationClient, TextGenerationError

logger = logging.getLogger(__name__)

_JSON_ARRAY = re.compile(r"\[[\s\S]*\]")


def build_roster_prompt(count: int) -> str:
    return (
        f"Invent {count} fictional publicly traded companies for a simulated stock market.\n"
        "Spread them across different sectors. For each company provide:\n"
        "- ticker: 3-5 uppercase letters, unique\n"
        "- name, sector, description (one sentence)\n"
        "- base_price: a number between 10 and 500\n"
        "- volatility: a number between 0.1 and 1.0\n"
        "Return ONLY a JSON array of objects with exactly these fields. No markdown."
    )


def validate_roster(companies: Sequence[Company]) -> List[Company]:
    """Reject empty rosters and duplicate tickers."""
    roster = list(companies)
    if not roster:
        raise ValueError("Company roster is empty")
    tickers = [c.ticker for c in roster]
    if len(tickers) != len(set(tickers)):
        raise ValueError("Company roster contains duplicate tickers")
    return roster


def parse_roster_payload(text: str, count: int) -> List[Company]:
    match = _JSON_ARRAY.search(text or "")
    if not match:
        raise ValueError("No JSON array found in response")
    raw = json.loads(match.group(0))
    if not isinstance(raw, list):
        raise ValueError("Roster payload is not a JSON array")

    companies: List[Company] = []
    seen = set()
    for item in raw:
        try:
            company = company_from_dict(item)
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed company entry %r: %s", item, exc)
            continue
        if company.ticker in seen:
            continue
        seen.add(company.ticker)
        companies.append(company)
        if len(companies) >= count:
            break
    return validate_roster(companies)


class CompanyRosterProvider:
    def __init__(
        self,
        client: Optional[TextGenerationClient] = None,
        config_engine: Optional[ConfigEngine] = None,
    ):
        self._client = client or TextGenerationClient()
        self._config_engine = config_engine or ConfigEngine()
        self.last_source: Optional[str] = None

    async def generate_companies(self, count: int = 8) -> List[Company]:
        """
        Build the market roster.

        Raises:
            InitializationFailure: neither the LLM nor the static roster
                produced a valid, unique-ticker roster
        """
        if count < 1:
            raise InitializationFailure("Company count must be at least 1")

        if self._client.enabled:
            try:
                text = await self._client.complete(build_roster_prompt(count))
                roster = parse_roster_payload(text, count)
                self.last_source = "llm"
                logger.info("Generated %d companies via LLM", len(roster))
                return roster
            except (TextGenerationError, ValueError) as exc:
                logger.warning("LLM roster generation failed, using static roster: %s", exc)

        try:
            self._config_engine.load_all()
            roster = validate_roster(self._config_engine.company_universe.companies[:count])
        except (OSError, KeyError, TypeError, ValueError, yaml.YAMLError) as exc:
            raise InitializationFailure(f"Company roster unavailable: {exc}") from exc

        self.last_source = "static"
        logger.info("Loaded %d companies from static roster", len(roster))
        return roster
