"""
Deployment defaults for the FYTE token ledger.

These values define the public rules of buying and claiming.
The owner can change cost and claim amounts after deploy; the cooldown is fixed.
"""

TOKEN_NAME = "FYTE"
TOKEN_SYMBOL = "FYTE"

# Native currency uses 18 decimals (wei)
NATIVE_DECIMALS = 18
WEI_PER_ETHER = 10**NATIVE_DECIMALS

# Price of one FYTE in wei
DEFAULT_FYTE_COST = 10 * WEI_PER_ETHER

# FYTE credited per claim for holders of each collection
DEFAULT_V1_CLAIM_AMOUNT = 10
DEFAULT_V2_CLAIM_AMOUNT = 5

# Minimum seconds between two claims of the same account
CLAIM_COOLDOWN_SECONDS = 24 * 60 * 60

SECONDS_PER_HOUR = 60 * 60

# Address the ledger's native funds are held under
CONTRACT_ADDRESS = "0x00000000000000000000000000000000000f7e00"

# Snapshot format version written by state.save_state
STATE_FORMAT = 1

# How a claim is paid when the account holds both collections:
# "sum" pays both claim amounts, "highest" pays only the larger one.
TIER_POLICY_SUM = "sum"
TIER_POLICY_HIGHEST = "highest"
TIER_POLICIES = (TIER_POLICY_SUM, TIER_POLICY_HIGHEST)
