"""
Yield Record Model
==================

A Record is one yield-bearing pool as reported by the upstream yields API,
already filtered to the target chain. Records are immutable: once a
generation of documents has been synthesized from them they never change.

Upstream rows use camelCase keys; `Record.from_dict` maps them onto the
snake_case fields used everywhere else.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Tuple


@dataclass(frozen=True)
class Prediction:
    """Upstream APY trend prediction attached to a pool."""
    predicted_class: str
    predicted_probability: float
    binned_confidence: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Prediction":
        return cls(
            predicted_class=str(data["predictedClass"]),
            predicted_probability=data["predictedProbability"],
            binned_confidence=data.get("binnedConfidence"),
        )


@dataclass(frozen=True)
class Record:
    """
    One yield opportunity on the target chain.

    Required upstream fields: chain, project, symbol, tvlUsd, apy,
    exposure, ilRisk. Everything else is optional and rendered as
    "N/A" when missing.
    """

    chain: str
    project: str
    symbol: str
    tvl_usd: float
    apy: float
    exposure: str
    il_risk: str

    # APY decomposition and trailing deltas
    apy_base: Optional[float] = None
    apy_reward: Optional[float] = None
    apy_pct_1d: Optional[float] = None
    apy_pct_7d: Optional[float] = None
    apy_pct_30d: Optional[float] = None
    apy_mean_30d: Optional[float] = None

    stablecoin: bool = False
    predictions: Optional[Prediction] = None

    underlying_tokens: Tuple[str, ...] = field(default_factory=tuple)
    reward_tokens: Tuple[str, ...] = field(default_factory=tuple)

    pool_meta: Optional[str] = None
    project_name: Optional[str] = None
    url: Optional[str] = None

    # Upstream key -> field name for the required fields
    REQUIRED_KEYS = (
        ("chain", "chain"),
        ("project", "project"),
        ("symbol", "symbol"),
        ("tvlUsd", "tvl_usd"),
        ("apy", "apy"),
        ("exposure", "exposure"),
        ("ilRisk", "il_risk"),
    )

    OPTIONAL_NUMBER_KEYS = (
        ("apyBase", "apy_base"),
        ("apyReward", "apy_reward"),
        ("apyPct1D", "apy_pct_1d"),
        ("apyPct7D", "apy_pct_7d"),
        ("apyPct30D", "apy_pct_30d"),
        ("apyMean30d", "apy_mean_30d"),
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Record":
        """
        Build a Record from an upstream pool object.

        Args:
            data: Pool dict with upstream camelCase keys

        Returns:
            Record

        Raises:
            ValueError: If a required key is missing or null
        """
        kwargs: Dict[str, Any] = {}

        for key, name in cls.REQUIRED_KEYS:
            value = data.get(key)
            if value is None:
                raise ValueError(f"Pool is missing required field '{key}'")
            kwargs[name] = value

        for key, name in cls.OPTIONAL_NUMBER_KEYS:
            kwargs[name] = data.get(key)

        predictions = data.get("predictions")
        if predictions:
            kwargs["predictions"] = Prediction.from_dict(predictions)

        return cls(
            stablecoin=bool(data.get("stablecoin", False)),
            underlying_tokens=tuple(data.get("underlyingTokens") or ()),
            reward_tokens=tuple(data.get("rewardTokens") or ()),
            pool_meta=data.get("poolMeta"),
            project_name=data.get("projectName"),
            url=data.get("url"),
            **kwargs,
        )

    def to_summary(self) -> Dict[str, Any]:
        """Short JSON-serializable view used by the debug endpoint."""
        return {
            "project": self.project,
            "symbol": self.symbol,
            "apy": self.apy,
            "tvlUsd": self.tvl_usd,
            "exposure": self.exposure,
            "ilRisk": self.il_risk,
        }


def parse_records(rows: List[Dict[str, Any]]) -> Tuple[List[Record], List[str]]:
    """
    Parse upstream rows, skipping the ones that cannot be mapped.

    Returns:
        (records, errors) - errors holds one message per skipped row
    """
    records = []
    errors = []
    for i, row in enumerate(rows):
        try:
            records.append(Record.from_dict(row))
        except (ValueError, KeyError, TypeError) as e:
            errors.append(f"row {i}: {e}")
    return records, errors
