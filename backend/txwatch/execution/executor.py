"""
Transaction Executor

Runs one transaction end to end:

1. Check the wallet is connected
2. Validate params against the kind's schema
3. BUILD: POST to the kind's gateway endpoint, get unsigned CBOR
4. SIGN with the wallet
5. SUBMIT through the wallet, get the tx hash
6. REGISTER with the gateway and hand the hash to the watch registry
   (only for kinds the gateway tracks)

Confirmation then continues in the watch registry; attach a TxObserver to
`result.tx_hash` to follow it.
"""

import inspect
from typing import Any, Callable, Dict, Optional, Union
from loguru import logger
from pydantic import BaseModel

from txwatch.errors import (
    BuildFailedError, NotConnectedError, SigningFailedError, SubmitFailedError,
    TransactionError, RegistrationError
)
from txwatch.gateway.client import GatewayClient
from txwatch.models.params import validate_tx_params
from txwatch.models.transaction import ExecutionState, TransactionResult, TxNotificationConfig
from txwatch.notifications import Notifier
from txwatch.transactions.catalog import TransactionType, get_gateway_tx_type, get_transaction_config
from txwatch.utils.cardano import get_transaction_explorer_url
from txwatch.utils.tx_logger import tx_logger
from txwatch.wallet import Wallet
from txwatch.watcher.registry import TxWatchRegistry, get_watch_registry

SuccessCallback = Callable[[TransactionResult], Any]
ErrorCallback = Callable[[TransactionError], Any]

class TransactionExecutor:
    def __init__(
        self,
        wallet: Wallet,
        gateway: GatewayClient,
        registry: Optional[TxWatchRegistry] = None,
        notifier: Optional[Notifier] = None,
        network: Optional[str] = None,
    ):
        self.wallet = wallet
        self.gateway = gateway
        self.registry = registry or get_watch_registry()
        self.notifier = notifier or self.registry.notifier
        self.network = network
        self.state = ExecutionState.IDLE
        self.result: Optional[TransactionResult] = None
        self.error: Optional[TransactionError] = None

    async def execute(
        self,
        tx_type: Union[TransactionType, str],
        params: Union[BaseModel, Dict[str, Any]],
        on_success: Optional[SuccessCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        skip_validation: bool = False,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Optional[TransactionResult]:
        """
        Build, sign, submit and register a transaction.

        Returns the result on success. On failure returns None; the typed
        error is left in `self.error` and `self.state` is ERROR.
        """
        tx_type = TransactionType(tx_type)
        config = get_transaction_config(tx_type)
        kind = tx_type.value

        self.error = None
        self.result = None

        try:
            if not self.wallet.connected:
                raise NotConnectedError()

            # Validation is part of the "fetching" step
            self.state = ExecutionState.FETCHING
            if skip_validation:
                body = params.model_dump(mode="json", exclude_none=True) if isinstance(params, BaseModel) else dict(params)
            else:
                body = validate_tx_params(tx_type, params)

            tx_logger.build_request(kind, f"{self.gateway.base_url}{config.endpoint}", body)
            try:
                api_response = await self.gateway.build_transaction(config.endpoint, body)
            except BuildFailedError as e:
                tx_logger.build_result(kind, False, {"status": e.status_code, "error": e.detail or e.message})
                raise
            tx_logger.build_result(kind, True, api_response)
            unsigned_tx = api_response.pop("unsigned_tx")

            self.state = ExecutionState.SIGNING
            try:
                signed_tx = await self.wallet.sign_tx(unsigned_tx, partial=True)
            except Exception as e:
                raise SigningFailedError(f"Signing failed: {e}") from e

            self.state = ExecutionState.SUBMITTING
            try:
                tx_hash = await self.wallet.submit_tx(signed_tx)
            except Exception as e:
                raise SubmitFailedError(f"Submit failed: {e}") from e

            explorer_url = get_transaction_explorer_url(tx_hash, self.network)
            tx_logger.tx_submitted(kind, tx_hash, explorer_url)
        except TransactionError as e:
            await self._fail(kind, e, on_error)
            return None

        should_register = config.requires_tracking
        if should_register:
            self.notifier.pending(
                tx_hash,
                config.success_info,
                "Transaction submitted. Waiting for confirmation..."
                if config.requires_db_update
                else "Transaction submitted to blockchain!",
            )
            try:
                await self.gateway.register_transaction(tx_hash, get_gateway_tx_type(tx_type), metadata)
                logger.info(f"[{kind}] Transaction registered with gateway")
            except RegistrationError as e:
                # Non-fatal: the gateway can still discover the TX on its own
                logger.warning(f"[{kind}] Failed to register TX: {e}")

            self.registry.watch(
                tx_hash,
                kind,
                metadata,
                TxNotificationConfig(success_title=config.success_info),
            )
        else:
            logger.info(f"[{kind}] Pure on-chain TX - skipping registration")
            self.notifier.success(config.success_info, "Transaction submitted to blockchain!", link=explorer_url)

        self.state = ExecutionState.SUCCESS
        self.result = TransactionResult(
            tx_hash=tx_hash,
            success=True,
            explorer_url=explorer_url,
            api_response=api_response,
            requires_db_update=config.requires_db_update,
            requires_onchain_confirmation=config.requires_onchain_confirmation,
        )

        if on_success is not None:
            await _maybe_await(on_success(self.result))
        return self.result

    def reset(self) -> None:
        self.state = ExecutionState.IDLE
        self.error = None
        self.result = None

    async def _fail(self, kind: str, error: TransactionError, on_error: Optional[ErrorCallback]) -> None:
        tx_logger.tx_error(kind, error)
        self.error = error
        self.state = ExecutionState.ERROR
        self.notifier.error("Transaction Failed", error.message)
        if on_error is not None:
            await _maybe_await(on_error(error))

    @property
    def is_idle(self) -> bool:
        return self.state == ExecutionState.IDLE

    @property
    def is_loading(self) -> bool:
        return self.state in (ExecutionState.FETCHING, ExecutionState.SIGNING, ExecutionState.SUBMITTING)

    @property
    def is_success(self) -> bool:
        return self.state == ExecutionState.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.state == ExecutionState.ERROR

async def _maybe_await(value: Any) -> None:
    if inspect.isawaitable(value):
        await value
