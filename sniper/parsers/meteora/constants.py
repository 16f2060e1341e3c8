"""Meteora Dynamic AMM program constants."""

DYNAMIC_AMM_PROGRAM_ID = "Eo7WjKq67rjJQSZxS6z3YkapzY3eMj6Xy8X5EQVn5UaB"

WSOL_MINT = "So11111111111111111111111111111111111111112"

# Pool account layout (Anchor): 8-byte discriminator, then
#   8:40   lp_mint (Pubkey)
#   40:72  token_a_mint (Pubkey)
#   72:104 token_b_mint (Pubkey)
TOKEN_A_MINT_OFFSET = 40
TOKEN_B_MINT_OFFSET = 72
POOL_MINTS_END = 104

# JSON-RPC notification method for programSubscribe
PROGRAM_NOTIFICATION = "programNotification"
