"""
eCash UTXO classification constants.

All values are in atoms (1 XEC = 100 atoms). These are the defaults used by
ClassificationConfig; callers can override any of them per analysis.
"""

from __future__ import annotations

# Network dust limit: outputs at or below this value are uneconomical to spend
DUST_THRESHOLD = 546  # atoms

# Outputs up to 2x the dust limit usually come back as change from token sends
CHANGE_MULTIPLIER = 2
CHANGE_THRESHOLD = CHANGE_MULTIPLIER * DUST_THRESHOLD  # 1092 atoms

# Outputs at or above this value are comfortable for fees
LARGE_THRESHOLD = 10_000  # atoms

# Minimum value (exclusive) for the security spending strategy
SECURITY_MIN_VALUE = 1_000  # atoms

# Token identifiers are 32-byte hashes rendered as hex
TOKEN_ID_LENGTH = 64

# Default token protocol when the attachment does not name one
DEFAULT_TOKEN_PROTOCOL = "SLP"

# Privacy sub-score used when no analytics score is available
DEFAULT_PRIVACY_SCORE = 50

# Dust attack detection
DUST_ATTACK_COUNT = 5
DUST_PATTERN_COUNT = 3
SYSTEMATIC_DUST_COUNT = 5

# Privacy detection
LOW_PRIVACY_THRESHOLD = 40
PRIVACY_RECOMMENDATION_THRESHOLD = 50
POOR_UTXO_PRIVACY_SCORE = 30
ROUND_NUMBER_COUNT = 3
ROUND_NUMBER_UNITS = (100_000, 50_000, 10_000)

# Suspicious / unconfirmed / concentration detection
SUSPICIOUS_HIGH_COUNT = 5
UNCONFIRMED_ACCUMULATION_COUNT = 10
ADDRESS_CONCENTRATION_COUNT = 50

# Token portfolio risks
TOKEN_CONCENTRATION_COUNT = 10
TOKEN_FRAGMENTATION_AVERAGE = 5

# Overall score below which a general hardening recommendation is emitted
GENERAL_RECOMMENDATION_SCORE = 70

# Composite score weights (sum to 1.0)
PRIVACY_WEIGHT = 0.4
HEALTH_WEIGHT = 0.3
DUST_WEIGHT = 0.2
SUSPICIOUS_WEIGHT = 0.1

# Penalty multipliers applied to dust / suspicious percentages
DUST_PENALTY = 2
SUSPICIOUS_PENALTY = 4

# Concurrent token metadata lookups against the wallet client
DEFAULT_METADATA_CONCURRENCY = 5
