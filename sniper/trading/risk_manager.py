"""Pre-buy balance checks and buy sizing.

All checks are synchronous (pure logic); the executor fetches the balance
and price before calling in.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

from sniper.trading.wallet import LAMPORTS_PER_SOL


class RiskManager:
    """Sizes a buy from a USD amount and enforces the wallet reserve."""

    def __init__(
        self,
        *,
        min_buy_usd: float,
        max_buy_sol: float,
        fee_reserve_sol: float = 0.05,
    ) -> None:
        if min_buy_usd <= 0:
            raise ValueError("min_buy_usd must be positive")
        self._min_buy_usd = Decimal(str(min_buy_usd))
        self._max_buy_sol = Decimal(str(max_buy_sol))
        self._fee_reserve = Decimal(str(fee_reserve_sol))

    def buy_size_sol(self, sol_price_usd: float) -> Decimal:
        """USD spend converted to SOL, capped at max_buy_sol."""
        price = Decimal(str(sol_price_usd))
        if price <= 0:
            raise ValueError("SOL price must be positive")
        size = self._min_buy_usd / price
        return min(size, self._max_buy_sol).quantize(Decimal("0.000000001"), rounding=ROUND_DOWN)

    @staticmethod
    def to_lamports(sol: Decimal) -> int:
        return int(sol * LAMPORTS_PER_SOL)

    def pre_buy_check(
        self,
        *,
        wallet_balance_sol: float,
        invest_sol: Decimal,
    ) -> tuple[bool, str]:
        """Check the wallet can cover the spend plus the fee reserve.

        Returns (allowed, reason). Reason is empty string if allowed.
        """
        bal = Decimal(str(wallet_balance_sol))
        if invest_sol <= 0:
            return False, f"Buy size {invest_sol} SOL is not positive"
        if bal <= invest_sol + self._fee_reserve:
            return (
                False,
                f"Insufficient balance: {bal:.4f} SOL <= {invest_sol:.4f} + {self._fee_reserve} reserve",
            )
        return True, ""
