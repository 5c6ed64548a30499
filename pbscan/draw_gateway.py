"""
Draw Data Gateway
=================

Fetches the latest official Powerball draw. Sources are tried in order:

1. MUSL API v3 (needs ``MUSL_API_KEY``)
2. New York Open Data (public)
3. A static mock draw, used only when both remote sources fail
"""

from typing import Dict, List, Optional, Union

import requests
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pbscan.config import GatewaySettings
from pbscan.draw_dates import latest_drawing_date, normalize_date
from pbscan.exceptions import GatewayFailure
from pbscan.models import Draw, NumberSet
from pbscan.number_validator import is_valid_multiplier

MOCK_WINNING_NUMBERS = NumberSet(white_balls=(12, 23, 34, 45, 56), powerball=7)
MOCK_MULTIPLIER = 3
MOCK_JACKPOT = 50000000.0


class MuslNumber(BaseModel):
    model_config = ConfigDict(extra='ignore')

    item_code: str = Field('', alias='itemCode')
    rule_code: str = Field('', alias='ruleCode')
    value: Union[int, str]


class MuslNumbersResponse(BaseModel):
    """``/v3/numbers`` payload."""

    model_config = ConfigDict(extra='ignore')

    draw_date: str = Field(alias='drawDate')
    status_code: str = Field('', alias='statusCode')
    numbers: List[MuslNumber] = Field(default_factory=list)

    def to_draw(self, jackpot_amount: float = 0.0) -> Draw:
        white_balls = sorted(int(n.value) for n in self.numbers if n.rule_code == 'white-balls')
        powerballs = [int(n.value) for n in self.numbers if n.rule_code == 'powerball']
        multipliers = [int(n.value) for n in self.numbers if n.item_code == 'power-play']

        if len(white_balls) != 5 or not powerballs:
            raise GatewayFailure(f"Incomplete MUSL draw: white_balls={white_balls}, pb={powerballs}")

        winning = NumberSet(white_balls=tuple(white_balls), powerball=powerballs[0])
        if not winning.is_valid:
            raise GatewayFailure(f"MUSL returned invalid numbers: {winning}")

        multiplier = multipliers[0] if multipliers and is_valid_multiplier(multipliers[0]) else None
        return Draw(
            draw_date=normalize_date(self.draw_date) or self.draw_date,
            winning_numbers=winning,
            multiplier=multiplier,
            jackpot_amount=jackpot_amount,
            source='musl_api',
        )


class MuslGrandPrize(BaseModel):
    model_config = ConfigDict(extra='ignore')

    annuity: float = 0.0
    cash: float = 0.0


class MuslGrandPrizeResponse(BaseModel):
    """``/v3/grandprize`` payload."""

    model_config = ConfigDict(extra='ignore')

    grand_prize: MuslGrandPrize = Field(alias='grandPrize')


class NyDrawRecord(BaseModel):
    """One row of the New York Open Data Powerball dataset."""

    model_config = ConfigDict(extra='ignore')

    draw_date: str
    winning_numbers: List[int]
    multiplier: Optional[int] = None

    @field_validator('winning_numbers', mode='before')
    @classmethod
    def split_numbers(cls, value):
        if isinstance(value, str):
            return [int(part) for part in value.split()]
        return value

    @field_validator('multiplier', mode='before')
    @classmethod
    def blank_multiplier(cls, value):
        if value in ('', None):
            return None
        return int(value)

    def to_draw(self) -> Draw:
        if len(self.winning_numbers) != 6:
            raise GatewayFailure(f"Expected 6 winning numbers, got {self.winning_numbers}")

        winning = NumberSet(white_balls=tuple(self.winning_numbers[:5]), powerball=self.winning_numbers[5])
        if not winning.is_valid:
            raise GatewayFailure(f"NY Open Data returned invalid numbers: {winning}")

        return Draw(
            draw_date=normalize_date(self.draw_date) or self.draw_date,
            winning_numbers=winning,
            multiplier=self.multiplier if is_valid_multiplier(self.multiplier) else None,
            source='ny_open_data',
        )


class DrawGateway:
    """
    Resolves the latest draw through the fallback chain.
    """

    def __init__(self, settings: Optional[GatewaySettings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or GatewaySettings()
        self.session = session or requests.Session()

    def _get_json(self, url: str, headers: Optional[Dict] = None, params: Optional[Dict] = None,
                  timeout: Optional[float] = None):
        try:
            response = self.session.get(
                url,
                headers=headers or {'Accept': 'application/json'},
                params=params,
                timeout=timeout or self.settings.timeout_seconds,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise GatewayFailure(f"Request to {url} failed: {e}") from e

    def _musl_headers(self) -> Dict[str, str]:
        if not self.settings.musl_api_key:
            raise GatewayFailure("MUSL_API_KEY not configured")
        return {'Accept': 'application/json', 'x-api-key': self.settings.musl_api_key}

    def fetch_jackpot(self) -> float:
        """Current advertised jackpot (annuity) from the MUSL grand prize endpoint."""
        data = self._get_json(self.settings.jackpot_url, self._musl_headers(), {'GameCode': 'powerball'})
        try:
            return MuslGrandPrizeResponse.model_validate(data).grand_prize.annuity
        except ValueError as e:
            raise GatewayFailure(f"Unexpected MUSL grand prize payload: {e}") from e

    def fetch_primary(self) -> Draw:
        """
        Latest draw from the MUSL API.

        Raises:
            GatewayFailure: missing API key, network error or unusable payload
        """
        data = self._get_json(self.settings.primary_url, self._musl_headers(), {'GameCode': 'powerball'})
        try:
            payload = MuslNumbersResponse.model_validate(data)
        except ValueError as e:
            raise GatewayFailure(f"Unexpected MUSL numbers payload: {e}") from e

        if payload.status_code and payload.status_code != 'complete':
            raise GatewayFailure(f"MUSL draw {payload.draw_date} is not complete ({payload.status_code})")

        try:
            jackpot = self.fetch_jackpot()
        except GatewayFailure as e:
            logger.warning(f"[musl_api] Jackpot unavailable: {e}")
            jackpot = 0.0

        return payload.to_draw(jackpot)

    def fetch_secondary(self) -> Draw:
        """
        Latest draw from New York Open Data.

        Raises:
            GatewayFailure: network error or unusable payload
        """
        data = self._get_json(
            self.settings.secondary_url,
            params={'$order': 'draw_date DESC', '$limit': 1},
        )
        if not isinstance(data, list) or not data:
            raise GatewayFailure("No data available from NY Open Data")
        try:
            record = NyDrawRecord.model_validate(data[0])
        except ValueError as e:
            raise GatewayFailure(f"Unexpected NY Open Data payload: {e}") from e
        return record.to_draw()

    def mock_draw(self) -> Draw:
        return Draw(
            draw_date=latest_drawing_date(),
            winning_numbers=MOCK_WINNING_NUMBERS,
            multiplier=MOCK_MULTIPLIER,
            jackpot_amount=MOCK_JACKPOT,
            source='mock',
        )

    def get_latest_draw(self) -> Draw:
        """
        Latest draw from the first source that answers. Never raises; the
        returned draw has ``source == 'mock'`` when both remote sources failed.
        """
        for name, fetch in (('musl_api', self.fetch_primary), ('ny_open_data', self.fetch_secondary)):
            try:
                draw = fetch()
            except GatewayFailure as e:
                logger.info(f"[{name}] unavailable: {e}")
                continue
            logger.info(
                f"[{name}] Latest draw {draw.draw_date}: {list(draw.winning_numbers.white_balls)} "
                f"+ PB {draw.winning_numbers.powerball} (x{draw.multiplier or 1})"
            )
            return draw

        logger.warning("All Powerball data sources failed, using mock draw data")
        return self.mock_draw()

    def quick_health_check_sources(self) -> Dict[str, bool]:
        """
        Quick connectivity check for both remote sources (5s timeout each).

        Returns:
            Dict with source availability: {'musl_api': bool, 'ny_open_data': bool}
        """
        health_status = {'musl_api': False, 'ny_open_data': False}

        if not self.settings.musl_api_key:
            logger.info("[health_check] MUSL API: SKIPPED (no API key configured)")
        else:
            try:
                self._get_json(self.settings.primary_url, self._musl_headers(), {'GameCode': 'powerball'}, timeout=5)
                health_status['musl_api'] = True
            except GatewayFailure as e:
                logger.warning(f"[health_check] MUSL API: UNAVAILABLE ({str(e)[:80]})")

        try:
            self._get_json(self.settings.secondary_url, params={'$limit': 1}, timeout=5)
            health_status['ny_open_data'] = True
        except GatewayFailure as e:
            logger.warning(f"[health_check] NY Open Data: UNAVAILABLE ({str(e)[:80]})")

        logger.info(f"[health_check] Complete: {sum(health_status.values())}/{len(health_status)} sources healthy")
        return health_status


def create_draw_gateway(settings: Optional[GatewaySettings] = None) -> DrawGateway:
    return DrawGateway(settings)
