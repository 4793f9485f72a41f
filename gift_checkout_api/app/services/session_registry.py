# gift_checkout_api/app/services/session_registry.py

import time
import uuid
from typing import Callable, Dict, List, Optional

from gift_checkout_api.app.core.exceptions import CheckoutError
from gift_checkout_api.app.interfaces import PaymentGatewayInterface
from gift_checkout_api.app.models.schemas import CheckoutEvent, CheckoutSnapshot, Customer, PaymentResponse
from gift_checkout_api.app.services.checkout_session import CheckoutSession
from gift_checkout_api.app.utilities.helpers import utc_now
from gift_checkout_api.app.utilities.logging_config import logger


class RecordingCallbacks:
    """
    Callbacks usados pela API: registram cada notificação como um
    `CheckoutEvent` para o front-end consultar via GET da sessão.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self.events: List[CheckoutEvent] = []

    def on_success(self, payment: PaymentResponse) -> None:
        logger.info(f"🎉 [{self.session_id}] Pagamento {payment.id} aprovado")
        self.events.append(CheckoutEvent(kind="success", payment_id=payment.id, at=utc_now()))

    def on_pending(self, payment: PaymentResponse) -> None:
        logger.info(f"⏳ [{self.session_id}] Pagamento {payment.id} pendente")
        self.events.append(CheckoutEvent(kind="pending", payment_id=payment.id, at=utc_now()))

    def on_error(self, error: Exception) -> None:
        logger.warning(f"⚠️ [{self.session_id}] Erro no checkout: {error}")
        self.events.append(CheckoutEvent(kind="error", message=str(error), at=utc_now()))


class SessionRegistry:
    """
    Sessões de checkout em memória, indexadas por UUID. Sessões sem acesso
    há mais de `ttl_seconds` (e sem polling ativo) são descartadas por
    `evict_expired()`.
    """

    def __init__(self, ttl_seconds: Optional[float] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, CheckoutSession] = {}
        self._last_access: Dict[str, float] = {}

    def create(
        self,
        gateway: PaymentGatewayInterface,
        amount_cents: int,
        description: str,
        customer: Customer,
        gift_id: Optional[str] = None,
        **kwargs,
    ) -> str:
        session_id = str(uuid.uuid4())
        callbacks = RecordingCallbacks(session_id)
        self._sessions[session_id] = CheckoutSession(
            gateway,
            amount_cents,
            description,
            customer,
            callbacks=callbacks,
            gift_id=gift_id,
            **kwargs,
        )
        self._last_access[session_id] = self._clock()
        logger.info(f"🆕 Sessão de checkout {session_id} criada ({gateway.provider}, {amount_cents} centavos)")
        return session_id

    def get(self, session_id: str) -> CheckoutSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise CheckoutError("Sessão de checkout não encontrada", code="SESSION_NOT_FOUND", status=404)
        self._last_access[session_id] = self._clock()
        return session

    def snapshot(self, session_id: str) -> CheckoutSnapshot:
        session = self.get(session_id)
        snapshot = session.snapshot()
        snapshot.session_id = session_id
        if isinstance(session.callbacks, RecordingCallbacks):
            snapshot.events = list(session.callbacks.events)
        return snapshot

    async def discard(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        self._last_access.pop(session_id, None)
        if session is None:
            raise CheckoutError("Sessão de checkout não encontrada", code="SESSION_NOT_FOUND", status=404)
        await session.aclose()
        logger.info(f"🗑️ Sessão de checkout {session_id} encerrada")

    async def evict_expired(self) -> int:
        """Descarta as sessões expiradas. Retorna quantas foram removidas."""
        if not self.ttl_seconds:
            return 0
        cutoff = self._clock() - self.ttl_seconds
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if self._last_access.get(session_id, 0.0) < cutoff and not session.is_polling
        ]
        for session_id in expired:
            await self.discard(session_id)
        if expired:
            logger.info(f"🧹 {len(expired)} sessão(ões) de checkout expirada(s) removida(s)")
        return len(expired)

    async def close_all(self) -> None:
        for session_id in list(self._sessions):
            await self.discard(session_id)

    def __len__(self) -> int:
        return len(self._sessions)
