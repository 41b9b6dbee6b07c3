"""
Registry constants.
"""

# Serial number: CR-<projectId>-<vintage>-<vintage+1>-<suffix>
SERIAL_PREFIX = "CR"
SERIAL_SUFFIX_DIGITS = 4

# Default category badge color
DEFAULT_CATEGORY_COLOR = "#00C781"

# Ledger network names keyed by chain id; 0 is the local mock chain
LEDGER_NETWORKS = {
    0: "mock",
    1: "ethereum-mainnet",
    5: "goerli",
    137: "polygon-mainnet",
    80001: "polygon-mumbai",
    56: "binance-smart-chain",
    97: "binance-smart-chain-testnet",
    43114: "avalanche",
    43113: "avalanche-fuji-testnet",
}

# Reference verification sequence loaded by the seed script
DEFAULT_VERIFICATION_STAGES = [
    ("Data Validation", "Review of project data and baseline calculations", 1),
    ("Methodology Assessment", "Check of the applied methodology and its eligibility", 2),
    ("Site Inspection", "Field audit of project activities", 3),
    ("Stakeholder Consultation", "Public comment period and stakeholder review", 4),
    ("Final Review", "Registry board decision", 5),
]
