# /liquidator/adapters/positions.py
# Pluggable sources of candidate at-risk accounts per market. Candidates are
# hints only; the scanner confirms each one against chain state.
import json
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import aiohttp
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from liquidator.core.decorators import retriable_network_call
from liquidator.core.errors import DataSourceError
from liquidator.core.logger import get_logger
from liquidator.core.models import Market

log = get_logger(__name__)


class PositionCandidate(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    account: str
    collateral_token: str = Field(alias="collateralToken")
    debt_token: str = Field(alias="debtToken")
    total_debt: int = Field(alias="totalDebt", ge=0)
    total_collateral: int = Field(alias="totalCollateral", ge=0)
    # Indexer's view, 1e18-scaled; superseded by the on-chain read.
    health_factor: Optional[int] = Field(default=None, alias="healthFactor")


class PositionSource:
    """Given a market, produce the accounts currently worth checking."""

    async def fetch_candidates(self, market: Market) -> List[PositionCandidate]:
        raise NotImplementedError

    async def close(self):
        pass


class NullPositionSource(PositionSource):
    async def fetch_candidates(self, market: Market) -> List[PositionCandidate]:
        return []


class StaticPositionSource(PositionSource):
    """
    Candidates from a JSON document keyed by market address::

        {"0xMarket": [{"account": "0x..", "collateralToken": "0x..",
                       "debtToken": "0x..", "totalDebt": "5000000000",
                       "totalCollateral": "3000000000000000000"}]}
    """
    def __init__(self, candidates: Dict[str, List[dict]]):
        try:
            self._candidates = {
                market.lower(): tuple(PositionCandidate.model_validate(c) for c in entries)
                for market, entries in candidates.items()
            }
        except ValidationError as e:
            raise DataSourceError(f"Invalid static position data: {e}") from e

    @classmethod
    def from_file(cls, path: str) -> "StaticPositionSource":
        with open(Path(path), encoding="utf-8") as f:
            return cls(json.load(f))

    async def fetch_candidates(self, market: Market) -> List[PositionCandidate]:
        return list(self._candidates.get(market.address.lower(), ()))


SUBGRAPH_QUERY = """
query AtRiskPositions($market: String!, $maxHealthFactor: BigInt!, $first: Int!) {
  positions(
    first: $first
    where: { market: $market, healthFactor_lt: $maxHealthFactor, totalDebt_gt: "0" }
    orderBy: healthFactor
    orderDirection: asc
  ) {
    account
    collateralToken
    debtToken
    totalDebt
    totalCollateral
    healthFactor
  }
}
"""


class SubgraphPositionSource(PositionSource):
    """
    Candidates from a subgraph-style GraphQL indexer.

    The indexer is asked for positions below the market threshold plus a
    margin, since its data lags the chain by a few blocks.
    """
    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        page_size: int = 500,
        margin: Decimal = Decimal("0.05"),
        timeout: int = 10,
    ):
        self.url = url
        self.page_size = page_size
        self.margin = margin
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    @retriable_network_call
    async def _query(self, variables: dict) -> dict:
        payload = {"query": SUBGRAPH_QUERY, "variables": variables}
        async with self._get_session().post(self.url, json=payload) as resp:
            resp.raise_for_status()
            return await resp.json()

    async def fetch_candidates(self, market: Market) -> List[PositionCandidate]:
        ceiling = int((market.parameters.threshold + self.margin) * 10**18)
        variables = {"market": market.address.lower(), "maxHealthFactor": str(ceiling), "first": self.page_size}
        try:
            body = await self._query(variables)
        except Exception as e:
            raise DataSourceError(f"Position indexer unavailable: {e}") from e
        if body.get("errors"):
            raise DataSourceError(f"Position indexer returned errors: {body['errors']}")

        candidates = []
        for row in (body.get("data") or {}).get("positions") or []:
            try:
                candidates.append(PositionCandidate.model_validate(row))
            except ValidationError as e:
                log.warning("POSITION_ROW_SKIPPED", market=market.name, error=str(e))
        log.debug("POSITION_CANDIDATES_FETCHED", market=market.name, count=len(candidates))
        return candidates

    async def close(self):
        if self._owns_session and self._session is not None:
            await self._session.close()
