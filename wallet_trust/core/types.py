"""Type definitions and enums for wallet trust scoring."""

import re
from enum import Enum
from typing import Literal


EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
SOLANA_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


class Chain(str, Enum):
    """Supported blockchain networks."""

    ETHEREUM = "ethereum"
    SOLANA = "solana"

    @classmethod
    def detect(cls, address: str) -> "Chain | None":
        """Guess the chain from the address format."""
        address = address.strip()
        if EVM_ADDRESS_PATTERN.match(address):
            return cls.ETHEREUM
        if SOLANA_ADDRESS_PATTERN.match(address):
            return cls.SOLANA
        return None


class Outcome(str, Enum):
    """Classification of a single token launch."""

    SUCCESS = "success"
    RUG = "rug"
    UNKNOWN = "unknown"


class ConfidenceLevel(str, Enum):
    """Confidence in a score, derived from data completeness."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    MEDIUM_LOW = "MEDIUM-LOW"
    LOW = "LOW"


class NoteSeverity(str, Enum):
    """Severity buckets for heuristic notes."""

    CRITICAL = "critical"
    WARNING = "warning"
    POSITIVE = "positive"
    INFO = "info"

    @property
    def heading(self) -> str:
        """Section heading used when grouping notes."""
        headings = {
            NoteSeverity.CRITICAL: "CRITICAL RISKS:",
            NoteSeverity.WARNING: "WARNINGS:",
            NoteSeverity.POSITIVE: "POSITIVE SIGNALS:",
            NoteSeverity.INFO: "ADDITIONAL INFO:",
        }
        return headings[self]


class RiskLevel(str, Enum):
    """Aggregate risk level reported in the heuristics summary."""

    HIGH = "HIGH"
    MODERATE = "MODERATE"
    LOW = "LOW"


# Type aliases for common patterns
Score = int          # 0-100
Ratio = float        # 0-1 fraction
USDAmount = float
Timestamp = float    # Unix timestamp in seconds

OutputFormatType = Literal["json", "table"]
DiscoveryMode = Literal["manual", "automatic"]
