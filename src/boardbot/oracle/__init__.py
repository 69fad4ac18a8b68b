"""Move oracle adapters."""

from boardbot.oracle.uci_oracle import UCIOracle

__all__ = ["UCIOracle"]
