# backend/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

load_dotenv()

from config import settings
from database import engine, SessionLocal, init_db
from services.exceptions import OrderError
from services.mailer import MailTransport
from services.notifications import NotificationDispatcher
from services.templates import TemplateRenderer

# Router imports
from routes.cart import router as cart_router
from routes.orders import router as orders_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Process-wide collaborators: built once here, reached by handlers through app.state
    init_db()
    app.state.dispatcher = NotificationDispatcher(
        session_factory=SessionLocal,
        renderer=TemplateRenderer(settings.TEMPLATES_DIR),
        transport=MailTransport.from_settings(settings),
        store_name=settings.STORE_NAME,
        sender_address=settings.MAIL_FROM,
    )
    logger.info("Order service started (email enabled: %s)", settings.EMAIL_ENABLED)
    yield
    engine.dispose()
    logger.info("Order service stopped")


app = FastAPI(title="Orders API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Order failures share one JSON shape: {"success": false, "message": ...}
@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


# Router registration
app.include_router(cart_router)
app.include_router(orders_router)

@app.get("/")
def read_root():
    return {"message": "Orders API is running"}
