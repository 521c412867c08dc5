"""
Standard type definitions for database models.

Provides consistent types for on-chain identifiers and amounts.
"""

from sqlalchemy import NUMERIC, String

# uint256 value stored as an exact numeric
# Precision: 78 digits, no fractional part
# Suitable for: open interest sums that need atomic SQL increments
UintType = NUMERIC(78, 0)

# uint256 value stored as a decimal string
# Suitable for: collateral amounts, token ids, order ids
UintStringType = String(78)

# 0x-prefixed, lowercase 20-byte address
AddressType = String(42)

# 0x-prefixed 32-byte hash (tx hashes, condition ids, uids)
HashType = String(66)
