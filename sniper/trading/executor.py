"""Trade executor — one buy attempt per call: balance check → quote → swap → sign → broadcast → record.

Nothing here retries. A failed step ends the attempt with a BuyResult
describing why; the pipeline decides what to do with the pool. The recorded
output amount is Jupiter's quote, not a confirmed on-chain amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from sniper.parsers.persistence import LedgerStore
from sniper.parsers.sol_price import SolPriceCache
from sniper.trading.broadcast import BroadcastError, BroadcastRelay
from sniper.trading.jupiter_swap import WSOL_MINT, JupiterSwapClient, SwapError
from sniper.trading.risk_manager import RiskManager
from sniper.trading.wallet import LAMPORTS_PER_SOL, SolanaWallet


class BuyOutcome(Enum):
    EXECUTED = "executed"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    FAILED = "failed"


@dataclass
class BuyResult:
    """Result of a single buy attempt."""

    outcome: BuyOutcome
    pool_address: str
    signature: str | None = None
    via: str | None = None
    amount_in_sol: Decimal | None = None
    amount_out: Decimal | None = None
    error: str | None = None
    recorded: bool = False

    @property
    def success(self) -> bool:
        return self.outcome is BuyOutcome.EXECUTED


class TradeExecutor:
    """Buys a freshly launched token with SOL through Jupiter."""

    def __init__(
        self,
        *,
        wallet: SolanaWallet,
        swap_client: JupiterSwapClient,
        relay: BroadcastRelay,
        ledger: LedgerStore,
        risk_manager: RiskManager,
        sol_price: SolPriceCache,
        slippage_bps: int = 100,
    ) -> None:
        self._wallet = wallet
        self._swap = swap_client
        self._relay = relay
        self._ledger = ledger
        self._risk = risk_manager
        self._sol_price = sol_price
        self._slippage_bps = slippage_bps

    async def get_balance(self) -> dict | None:
        return await self._wallet.get_balance()

    async def buy(self, pool_address: str, token_mint: str) -> BuyResult:
        """Attempt one buy of `token_mint` for the pool. Never raises for expected failures."""
        invest_sol = self._risk.buy_size_sol(self._sol_price.price_usd)

        lamports_balance = await self._wallet.get_balance_lamports()
        if lamports_balance is None:
            return self._failed(pool_address, "Balance check failed", invest_sol)

        allowed, reason = self._risk.pre_buy_check(
            wallet_balance_sol=lamports_balance / LAMPORTS_PER_SOL,
            invest_sol=invest_sol,
        )
        if not allowed:
            logger.warning(f"[BUY] {pool_address[:12]} skipped: {reason}")
            return BuyResult(
                outcome=BuyOutcome.INSUFFICIENT_FUNDS,
                pool_address=pool_address,
                amount_in_sol=invest_sol,
                error=reason,
            )

        amount_lamports = self._risk.to_lamports(invest_sol)
        logger.info(
            f"[BUY] {pool_address[:12]} buying {token_mint[:12]} with {invest_sol} SOL "
            f"(slippage: {self._slippage_bps}bps)"
        )

        try:
            quote = await self._swap.get_quote(
                input_mint=WSOL_MINT,
                output_mint=token_mint,
                amount=amount_lamports,
                slippage_bps=self._slippage_bps,
            )
            amount_out = Decimal(str(quote["outAmount"]))
            unsigned_tx = await self._swap.get_swap_transaction(quote, self._wallet.pubkey_str)
        except SwapError as e:
            return self._failed(pool_address, str(e), invest_sol)
        except (KeyError, InvalidOperation):
            return self._failed(pool_address, f"Quote outAmount unusable: {quote.get('outAmount')!r}", invest_sol)

        try:
            signed_tx = self._wallet.sign(unsigned_tx)
        except Exception as e:  # solders SignerError and friends
            return self._failed(pool_address, f"Signing failed: {e}", invest_sol)

        try:
            handle = await self._relay.submit(signed_tx)
        except BroadcastError as e:
            return self._failed(pool_address, str(e), invest_sol)

        result = BuyResult(
            outcome=BuyOutcome.EXECUTED,
            pool_address=pool_address,
            signature=handle.signature,
            via=handle.via,
            amount_in_sol=invest_sol,
            amount_out=amount_out,
        )

        try:
            result.recorded = await self._ledger.record_trade(
                signature=handle.signature,
                pool_address=pool_address,
                token_out=token_mint,
                amount_in_sol=invest_sol,
                amount_out=amount_out,
                via=handle.via,
            )
        except SQLAlchemyError:
            # Already broadcast: keep EXECUTED so the pool isn't bought twice
            logger.exception(f"[BUY] Trade {handle.signature} submitted but not recorded")

        logger.success(f"[BUY] SNIPED {token_mint[:12]} via {handle.via} sig={handle.signature}")
        return result

    @staticmethod
    def _failed(pool_address: str, error: str, invest_sol: Decimal) -> BuyResult:
        logger.error(f"[BUY] {pool_address[:12]} buy failed: {error}")
        return BuyResult(
            outcome=BuyOutcome.FAILED,
            pool_address=pool_address,
            amount_in_sol=invest_sol,
            error=error,
        )
