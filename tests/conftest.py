"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from yieldrag.records.models import Record, Prediction


def make_record(project: str, symbol: str, apy: float = 5.0, tvl_usd: float = 1000.0, **overrides) -> Record:
    """Record with sensible defaults for the fields a test does not care about."""
    fields = dict(
        chain="Rootstock",
        project=project,
        symbol=symbol,
        tvl_usd=tvl_usd,
        apy=apy,
        exposure="single",
        il_risk="no",
    )
    fields.update(overrides)
    return Record(**fields)


class StaticSource:
    """Record source double that returns a fixed pull."""

    def __init__(self, records, fetched_at=1.0):
        self.records = list(records)
        self.fetched_at = fetched_at
        self.calls = 0

    def fetch(self, force_refresh=False):
        self.calls += 1
        if force_refresh:
            self.fetched_at += 1
        return list(self.records)


@pytest.fixture
def two_records():
    """The A/B pair: A has the higher APY, B the higher TVL."""
    return [
        make_record("A", "AX", apy=12.34, tvl_usd=1000000, exposure="single", il_risk="no"),
        make_record("B", "BX", apy=5.0, tvl_usd=5000000, exposure="multi", il_risk="yes"),
    ]


@pytest.fixture
def rootstock_records():
    """A small but realistic Rootstock pull."""
    return [
        make_record(
            "sovryn-dex", "RBTC-XUSD", apy=18.5, tvl_usd=2500000.5,
            exposure="multi", il_risk="yes",
            apy_base=3.5, apy_reward=15.0, apy_pct_1d=0.12, apy_pct_7d=-1.4,
            apy_pct_30d=2.0, apy_mean_30d=17.25,
            predictions=Prediction("Stable/Up", 73, 3),
        ),
        make_record(
            "sovryn-dex", "RBTC-DOC", apy=9.75, tvl_usd=800000,
            exposure="multi", il_risk="yes",
        ),
        make_record(
            "tropykus", "DOC", apy=4.1, tvl_usd=1200000,
            stablecoin=True,
        ),
        make_record(
            "money-on-chain", "RIF", apy=0.0, tvl_usd=300000,
        ),
    ]


@pytest.fixture
def upstream_pools():
    """Rows as the yields API returns them, two chains mixed."""
    return [
        {
            "chain": "Rootstock",
            "project": "sovryn-dex",
            "symbol": "RBTC-XUSD",
            "tvlUsd": 2500000,
            "apy": 18.5,
            "apyBase": 3.5,
            "apyReward": 15.0,
            "apyPct1D": 0.12,
            "apyPct7D": None,
            "apyPct30D": None,
            "apyMean30d": 17.25,
            "exposure": "multi",
            "ilRisk": "yes",
            "stablecoin": False,
            "rewardTokens": ["0xefc78fc7d48b64958315949279ba181c2114abbd"],
            "underlyingTokens": None,
            "predictions": {
                "predictedClass": "Stable/Up",
                "predictedProbability": 73,
                "binnedConfidence": 3,
            },
            "url": "https://sovryn.app",
        },
        {
            "chain": "Ethereum",
            "project": "lido",
            "symbol": "STETH",
            "tvlUsd": 30000000000,
            "apy": 3.1,
            "exposure": "single",
            "ilRisk": "no",
            "stablecoin": False,
        },
        {
            "chain": "Rootstock",
            "project": "tropykus",
            "symbol": "DOC",
            "tvlUsd": 1200000,
            "apy": 4.1,
            "exposure": "single",
            "ilRisk": "no",
            "stablecoin": True,
            "predictions": None,
        },
    ]
