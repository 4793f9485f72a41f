# gift_checkout_api/app/main.py

from contextlib import asynccontextmanager

from dotenv import load_dotenv; load_dotenv()

from fastapi import FastAPI, Response
from gift_checkout_api.app.api.routes import checkout_router
from gift_checkout_api.app.core.config import settings
from gift_checkout_api.app.dependencies import get_session_registry
from gift_checkout_api.app.error_handlers import add_error_handlers
from gift_checkout_api.app.utilities.logging_config import logger

APP_VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("🚀 Aplicação iniciando...")
    logger.info(f"✅ API `{app.title}` versão `{app.version}` inicializada!")
    logger.info(f"🏦 Gateway padrão: {settings.PAYMENT_GATEWAY} | Backend: {settings.API_BASE_URL}")
    logger.info(f"🔧 Debug: {'Ativado' if app.debug else 'Desativado'}")
    yield
    logger.info("🛑 Aplicação sendo encerrada...")
    await get_session_registry().close_all()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Gift Checkout API",
        version=APP_VERSION,
        description="Checkout da lista de presentes: PIX e cartão de crédito via Mercado Pago ou PagBank",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # ========== ROTAS PRINCIPAIS ==========
    app.include_router(checkout_router, prefix="/checkout", tags=["Checkout"])

    # ========== HANDLERS DE ERRO ==========
    add_error_handlers(app)

    @app.get("/", tags=["Health Check"])
    @app.head("/", tags=["Health Check"])
    async def health_check(response: Response):
        response.headers["Cache-Control"] = "no-cache"
        return {
            "status": "OK",
            "message": "Gift Checkout API operacional",
            "version": APP_VERSION,
            "gateway": settings.PAYMENT_GATEWAY,
            "features": [
                "PIX com QR Code e polling de status",
                "Cartão de crédito tokenizado em até 12x",
                "Checkout hospedado PagBank",
                "Mensagens de erro amigáveis",
            ],
        }

    return app


app = create_app()
