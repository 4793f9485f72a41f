# gift_checkout_api/app/services/checkout_session.py

"""
Máquina de estados do checkout de um presente.

Uma `CheckoutSession` pertence a um único presente/valor/descrição até o
`reset()`. Todas as chamadas ao gateway são aguardadas no event loop; cada
ação abre uma nova "época" e qualquer resposta que chegue depois de uma época
mais nova (reset ou nova geração de PIX) é descartada.
"""

import asyncio
import inspect
from datetime import datetime
from typing import Any, Callable, List, Optional, Sequence

from gift_checkout_api.app.core.config import settings
from gift_checkout_api.app.core.exceptions import (
    CheckoutStateError,
    CheckoutValidationError,
    PaymentDeclinedError,
)
from gift_checkout_api.app.interfaces import CheckoutCallbacksInterface, PaymentGatewayInterface
from gift_checkout_api.app.models.schemas import (
    DEFAULT_PAYMENT_METHODS,
    CheckoutRedirect,
    CheckoutSnapshot,
    CheckoutState,
    CreditCardForm,
    Customer,
    FriendlyError,
    InstallmentOption,
    PaymentMethod,
    PaymentMethodId,
    PaymentResponse,
    PaymentStatus,
    PaymentToken,
    PixPayment,
)
from gift_checkout_api.app.services.error_classifier import classify
from gift_checkout_api.app.services.installments import compute_installments, find_installment_option
from gift_checkout_api.app.utilities.helpers import from_cents, mask_token, utc_now
from gift_checkout_api.app.utilities.logging_config import logger

BUSY_STATES = frozenset({CheckoutState.LOADING, CheckoutState.CARD_PROCESSING})
TERMINAL_STATES = frozenset({
    CheckoutState.TERMINAL_APPROVED,
    CheckoutState.TERMINAL_REJECTED,
    CheckoutState.TERMINAL_CANCELLED,
})
PENDING_STATES = frozenset({CheckoutState.PIX_PENDING, CheckoutState.CARD_PENDING})

_STATUS_TO_TERMINAL = {
    PaymentStatus.APPROVED: CheckoutState.TERMINAL_APPROVED,
    PaymentStatus.REJECTED: CheckoutState.TERMINAL_REJECTED,
    PaymentStatus.CANCELLED: CheckoutState.TERMINAL_CANCELLED,
}


class CheckoutSession:
    def __init__(
        self,
        gateway: PaymentGatewayInterface,
        amount_cents: int,
        description: str,
        customer: Customer,
        callbacks: Optional[CheckoutCallbacksInterface] = None,
        gift_id: Optional[str] = None,
        payment_methods: Optional[Sequence[PaymentMethod]] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
    ):
        self.gateway = gateway
        self.amount_cents = amount_cents
        self.description = description
        self.customer = customer
        self.callbacks = callbacks
        self.gift_id = gift_id
        self.poll_interval = settings.POLL_INTERVAL_SECONDS if poll_interval is None else poll_interval
        self.poll_timeout = settings.POLL_TIMEOUT_SECONDS if poll_timeout is None else poll_timeout

        # Configuração estática: sobrevive ao reset
        self.payment_methods: List[PaymentMethod] = list(payment_methods or DEFAULT_PAYMENT_METHODS)
        self.installment_options: List[InstallmentOption] = compute_installments(from_cents(amount_cents))

        self.state = CheckoutState.IDLE
        self.processing_step: Optional[str] = None
        self.error: Optional[str] = None
        self.friendly_error: Optional[FriendlyError] = None
        self.error_at: Optional[datetime] = None
        self.selected_method: Optional[PaymentMethod] = None
        self.pix_payment: Optional[PixPayment] = None
        self.payment_token: Optional[PaymentToken] = None
        self.payment_status: Optional[PaymentResponse] = None
        self.checkout_redirect: Optional[CheckoutRedirect] = None

        self._epoch = 0
        self._poll_task: Optional[asyncio.Task] = None
        self._terminal_notified = False
        self._pending_notified = False

    # ─── Estado ──────────────────────────────────────────────────────────────

    @property
    def is_loading(self) -> bool:
        return self.state in BUSY_STATES

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def payment_url(self) -> Optional[str]:
        return self.checkout_redirect.payment_url if self.checkout_redirect else None

    def snapshot(self) -> CheckoutSnapshot:
        return CheckoutSnapshot(
            state=self.state,
            is_loading=self.is_loading,
            processing_step=self.processing_step,
            amount_cents=self.amount_cents,
            description=self.description,
            gift_id=self.gift_id,
            error=self.error,
            friendly_error=self.friendly_error,
            payment_methods=self.payment_methods,
            selected_method=self.selected_method,
            pix_payment=self.pix_payment,
            installment_options=self.installment_options,
            payment_status=self.payment_status,
            payment_url=self.payment_url,
        )

    def _require_state(self, action: str, allowed: frozenset) -> None:
        if self.state not in allowed:
            raise CheckoutStateError(
                f"Ação '{action}' não permitida no estado '{self.state.value}'",
                code="INVALID_STATE",
                status=409,
            )

    def _begin(self, state: CheckoutState) -> int:
        """Abre uma nova época: cancela o polling anterior e limpa o erro."""
        self._cancel_polling()
        self._epoch += 1
        self.state = state
        self.error = None
        self.friendly_error = None
        self.error_at = None
        self._terminal_notified = False
        self._pending_notified = False
        return self._epoch

    def _is_stale(self, epoch: int, action: str) -> bool:
        if epoch != self._epoch:
            logger.info(f"🗑️ Resposta de '{action}' descartada (época {epoch}, atual {self._epoch})")
            return True
        return False

    def _fail(self, exc: Exception, action: str) -> FriendlyError:
        friendly = classify(exc)
        self.state = CheckoutState.ERROR
        self.processing_step = None
        self.error = str(exc) or friendly.original_error
        self.friendly_error = friendly
        self.error_at = utc_now()
        logger.error(f"❌ Erro em '{action}': {self.error} (categoria: {friendly.category.value})")
        return friendly

    # ─── Configuração ────────────────────────────────────────────────────────

    def set_amount(self, amount_cents: int) -> None:
        """Atualiza o valor do presente e recalcula as parcelas."""
        self._require_state("set_amount", frozenset({CheckoutState.IDLE, CheckoutState.ERROR}))
        if amount_cents != self.amount_cents:
            # O checkout hospedado foi criado para o valor anterior
            self.checkout_redirect = None
        self.amount_cents = amount_cents
        self.installment_options = compute_installments(from_cents(amount_cents))

    def select_method(self, method_id: Optional[PaymentMethodId]) -> Optional[PaymentMethod]:
        self._require_state(
            "select_method",
            frozenset({CheckoutState.IDLE, CheckoutState.ERROR, *PENDING_STATES}),
        )
        if method_id is None:
            self.selected_method = None
            return None
        try:
            method_id = PaymentMethodId(method_id)
        except ValueError:
            raise CheckoutValidationError(f"Meio de pagamento indisponível: {method_id}")
        method = next((m for m in self.payment_methods if m.id == method_id), None)
        if method is None or not method.enabled:
            raise CheckoutValidationError(f"Meio de pagamento indisponível: {method_id}")
        self.selected_method = method
        return method

    # ─── PIX ─────────────────────────────────────────────────────────────────

    async def generate_pix_payment(self) -> Optional[PixPayment]:
        """
        Gera um novo PIX e inicia o polling de status. Um PIX anterior e seu
        polling são substituídos. Retorna None em caso de falha (ver `error`).
        """
        self._require_state(
            "generate_pix_payment",
            frozenset({CheckoutState.IDLE, CheckoutState.ERROR, CheckoutState.PIX_PENDING}),
        )
        epoch = self._begin(CheckoutState.LOADING)
        self.pix_payment = None
        self.payment_status = None

        try:
            if not self.customer.name or not self.customer.name.strip():
                raise CheckoutValidationError("Nome do cliente é obrigatório", code="CUSTOMER_NAME_REQUIRED")
            if self.amount_cents <= 0:
                raise CheckoutValidationError("Valor deve ser maior que zero")

            pix = await self.gateway.generate_pix_payment(
                self.amount_cents, self.description, self.customer, self.gift_id
            )
        except Exception as exc:
            if not self._is_stale(epoch, "generate_pix_payment"):
                self._fail(exc, "generate_pix_payment")
            return None

        if self._is_stale(epoch, "generate_pix_payment"):
            return None

        now = utc_now()
        self.pix_payment = pix
        self.payment_status = PaymentResponse(
            id=pix.id,
            status=pix.status,
            method=PaymentMethodId.PIX,
            amount_cents=pix.amount_cents,
            description=self.description,
            customer=self.customer,
            created_at=now,
            updated_at=now,
            pix_code=pix.pix_code,
            qr_code_base64=pix.qr_code_base64,
            expires_at=pix.expires_at,
            gift_id=self.gift_id,
        )
        self.state = CheckoutState.PIX_PENDING
        logger.info(f"✅ PIX {pix.id} pronto, iniciando polling")
        self._start_polling(pix.id, PaymentMethodId.PIX, epoch)
        return pix

    # ─── Cartão ──────────────────────────────────────────────────────────────

    async def process_credit_card_payment(
        self,
        card_form: CreditCardForm,
        installments: Optional[int] = None,
    ) -> Optional[PaymentResponse]:
        """
        Tokeniza o cartão e envia a cobrança. Aprovado → `on_success`;
        pendente → `on_pending` + polling; recusado/cancelado/erro → `on_error`.
        """
        self._require_state(
            "process_credit_card_payment",
            frozenset({CheckoutState.IDLE, CheckoutState.ERROR}),
        )
        epoch = self._begin(CheckoutState.CARD_PROCESSING)
        self.payment_token = None
        self.payment_status = None
        installments = installments or card_form.installments

        try:
            if self.amount_cents <= 0:
                raise CheckoutValidationError("Valor deve ser maior que zero")
            find_installment_option(self.installment_options, installments)

            self.processing_step = "tokenizing"
            token = await self.gateway.create_payment_token(card_form)
            if self._is_stale(epoch, "create_payment_token"):
                return None
            self.payment_token = token

            self.processing_step = "charging"
            logger.info(f"💳 Cobrando {installments}x com token {mask_token(token.id)}")
            payment = await self.gateway.charge_credit_card(
                token,
                installments,
                self.amount_cents,
                self.description,
                self.customer,
                self.gift_id,
                card_form,
            )
        except Exception as exc:
            if self._is_stale(epoch, "process_credit_card_payment"):
                return None
            self._fail(exc, "process_credit_card_payment")
            await self._notify("error", exc, epoch)
            return None

        if self._is_stale(epoch, "process_credit_card_payment"):
            return None

        self.processing_step = None
        await self._apply_status(payment, epoch)
        if self.state == CheckoutState.CARD_PENDING and epoch == self._epoch:
            self._start_polling(payment.id, PaymentMethodId.CREDIT_CARD, epoch)
        return payment

    # ─── Checkout hospedado ──────────────────────────────────────────────────

    async def create_checkout(self) -> Optional[CheckoutRedirect]:
        """Cria o checkout hospedado (PagBank) e guarda a URL de redirecionamento."""
        self._require_state("create_checkout", frozenset({CheckoutState.IDLE, CheckoutState.ERROR}))
        if self.checkout_redirect is not None:
            return self.checkout_redirect

        epoch = self._begin(CheckoutState.LOADING)
        try:
            redirect = await self.gateway.create_checkout(
                self.amount_cents, self.description, self.customer, self.gift_id
            )
        except Exception as exc:
            if self._is_stale(epoch, "create_checkout"):
                return None
            self._fail(exc, "create_checkout")
            await self._notify("error", exc, epoch)
            return None

        if self._is_stale(epoch, "create_checkout"):
            return None

        self.checkout_redirect = redirect
        self.state = CheckoutState.IDLE
        return redirect

    # ─── Status ──────────────────────────────────────────────────────────────

    async def check_payment_status(self, payment_id: Optional[str] = None) -> Optional[PaymentResponse]:
        """
        Consulta avulsa de status (ex.: retorno do checkout hospedado).
        Segue as mesmas regras de callback do polling.
        """
        self._require_state(
            "check_payment_status",
            frozenset({CheckoutState.IDLE, CheckoutState.ERROR, *PENDING_STATES}),
        )
        method = PaymentMethodId.PIX
        if payment_id is None:
            if self.payment_status is not None:
                payment_id, method = self.payment_status.id, self.payment_status.method
            elif self.checkout_redirect is not None:
                payment_id = self.checkout_redirect.checkout_id

        epoch = self._epoch
        try:
            if payment_id is None:
                raise CheckoutValidationError("Nenhum pagamento para consultar")
            payment = await self.gateway.get_payment_status(payment_id, method)
        except Exception as exc:
            if not self._is_stale(epoch, "check_payment_status"):
                self._fail(exc, "check_payment_status")
            return None

        if self._is_stale(epoch, "check_payment_status"):
            return None
        if self.is_finished:
            logger.info(f"🗑️ Status de {payment.id} descartado: checkout já finalizado ({self.state.value})")
            return self.payment_status
        self.error = None
        self.friendly_error = None
        await self._apply_status(payment, epoch)
        if payment.is_terminal:
            self._cancel_polling()
        return payment

    async def _apply_status(self, payment: PaymentResponse, epoch: int) -> None:
        if self.is_finished:
            logger.info(f"🗑️ Status de {payment.id} ignorado: checkout já finalizado ({self.state.value})")
            return
        self.payment_status = payment
        if self.pix_payment is not None and self.pix_payment.id == payment.id:
            self.pix_payment = self.pix_payment.model_copy(update={"status": payment.status})

        if payment.status in _STATUS_TO_TERMINAL:
            self.state = _STATUS_TO_TERMINAL[payment.status]
            logger.info(f"🏁 Pagamento {payment.id} finalizado: {payment.status.value}")
            if payment.status == PaymentStatus.APPROVED:
                await self._notify("success", payment, epoch)
            else:
                error = PaymentDeclinedError(
                    f"Pagamento {payment.status.value}",
                    code=payment.status_detail,
                )
                self.friendly_error = classify(error)
                await self._notify("error", error, epoch)
            return

        if payment.method == PaymentMethodId.CREDIT_CARD or self.state == CheckoutState.CARD_PENDING:
            self.state = CheckoutState.CARD_PENDING
        else:
            self.state = CheckoutState.PIX_PENDING
        await self._notify("pending", payment, epoch)

    # ─── Polling ─────────────────────────────────────────────────────────────

    def _start_polling(self, payment_id: str, method: PaymentMethodId, epoch: int) -> None:
        self._cancel_polling()
        self._poll_task = asyncio.create_task(self._poll_loop(payment_id, method, epoch))

    def _cancel_polling(self) -> None:
        task = self._poll_task
        self._poll_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _poll_loop(self, payment_id: str, method: PaymentMethodId, epoch: int) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.poll_timeout
        logger.info(f"🔄 Polling de {payment_id} a cada {self.poll_interval}s (limite {self.poll_timeout}s)")

        while True:
            await asyncio.sleep(self.poll_interval)
            if epoch != self._epoch:
                return
            if loop.time() >= deadline:
                logger.warning(f"⏱️ Polling de {payment_id} encerrado após {self.poll_timeout}s sem status final")
                return

            try:
                payment = await self.gateway.get_payment_status(payment_id, method)
            except Exception as exc:
                logger.warning(f"⚠️ Erro ao verificar status do pagamento {payment_id}: {exc}")
                continue

            if epoch != self._epoch:
                return
            await self._apply_status(payment, epoch)
            if self.is_finished:
                return

    # ─── Callbacks ───────────────────────────────────────────────────────────

    async def _notify(self, kind: str, payload: Any, epoch: int) -> None:
        """
        Dispara o callback correspondente. Callbacks de status final
        disparam no máximo uma vez por época; `on_pending`, uma vez por época.
        """
        if epoch != self._epoch or self.callbacks is None:
            return
        if kind == "pending":
            if self._pending_notified or self._terminal_notified:
                return
            self._pending_notified = True
        else:
            if self._terminal_notified:
                return
            self._terminal_notified = True

        handler: Optional[Callable[[Any], Any]] = getattr(self.callbacks, f"on_{kind}", None)
        if handler is None:
            return
        try:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"❌ Callback on_{kind} falhou")

    # ─── Reset ───────────────────────────────────────────────────────────────

    def clear_error(self) -> None:
        """Descarta o erro exibido e volta para idle."""
        self.error = None
        self.friendly_error = None
        self.error_at = None
        if self.state == CheckoutState.ERROR:
            self.state = CheckoutState.IDLE

    def reset(self) -> None:
        """
        Volta para idle descartando PIX, token, status e erros. Cancela o
        polling em andamento. Meios de pagamento e parcelas são preservados.
        """
        self._cancel_polling()
        self._epoch += 1
        self.state = CheckoutState.IDLE
        self.processing_step = None
        self.error = None
        self.friendly_error = None
        self.error_at = None
        self.selected_method = None
        self.pix_payment = None
        self.payment_token = None
        self.payment_status = None
        self.checkout_redirect = None
        self._terminal_notified = False
        self._pending_notified = False
        logger.info("🔄 Checkout reiniciado")

    async def aclose(self) -> None:
        """Cancela e aguarda o polling. Usado ao descartar a sessão."""
        task = self._poll_task
        self.reset()
        if task is not None and not task.done():
            try:
                await task
            except asyncio.CancelledError:
                pass
