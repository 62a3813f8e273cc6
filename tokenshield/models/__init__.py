from tokenshield.models.token import (
    Chain,
    Dex,
    HolderEntry,
    LiquidityHolderReport,
    PoolInfo,
    SimulationOutcome,
    SimulationResult,
    TokenAssessment,
    TokenCheckList,
    TokenScore,
    TokenWebData,
)

__all__ = [
    "Chain",
    "Dex",
    "PoolInfo",
    "HolderEntry",
    "LiquidityHolderReport",
    "SimulationOutcome",
    "SimulationResult",
    "TokenWebData",
    "TokenCheckList",
    "TokenScore",
    "TokenAssessment",
]
