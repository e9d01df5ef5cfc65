from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from strawberry.fastapi import GraphQLRouter

from gymbook.core.config import CORS_ALLOW_ORIGINS, is_production
from gymbook.core.logging_config import get_logger, setup_logging
from gymbook.db.postgresql import SessionLocal
from gymbook.graphql.context import build_context
from gymbook.graphql.schema import schema
from gymbook.services.membership_expiry import MembershipExpiryService

setup_logging()
logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    expiry_service = MembershipExpiryService(SessionLocal)
    expiry_service.start()
    app.state.membership_expiry = expiry_service
    logger.info("Booking API started")
    try:
        yield
    finally:
        await expiry_service.stop()
        logger.info("Booking API stopped")


app = FastAPI(title="Gymbook Booking API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

graphql_app = GraphQLRouter(
    schema=schema,
    context_getter=build_context,
    graphiql=not is_production()
)
app.include_router(graphql_app, prefix="/graphql")


@app.get("/health")
def health():
    return {"status": "ok"}
